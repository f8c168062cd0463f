"""
Image-to-tensor preprocessing.

Decodes an encoded image, stretches it to an ``imgsz x imgsz`` square and packs
it into a channel-planar (NCHW) float32 buffer normalized to [0, 1].
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError
from .utils import get_logger

logger = get_logger(__name__)

EncodedImage = Union[bytes, bytearray, memoryview]

_SCALE = np.float32(255.0)


@dataclass(frozen=True)
class InputTensor:
    """
    Flat float32 buffer plus the shape descriptor handed to the runtime.

    ``data`` holds ``3 * imgsz * imgsz`` values: the whole red plane, then
    green, then blue, each plane in row-major order. ``shape`` is always
    ``(1, 3, imgsz, imgsz)``.
    """

    data: np.ndarray
    shape: Tuple[int, int, int, int]

    def __post_init__(self):
        expected = int(np.prod(self.shape))
        if self.data.ndim != 1 or self.data.size != expected:
            raise ValueError(
                f"Buffer of size {self.data.size} does not match shape {self.shape}"
            )

    @property
    def imgsz(self) -> int:
        return self.shape[-1]

    def as_batch(self) -> np.ndarray:
        """Return a ``(1, 3, imgsz, imgsz)`` view over the flat buffer."""
        return self.data.reshape(self.shape)

    def __len__(self) -> int:
        return self.data.size


def decode_image(encoded_bytes: EncodedImage) -> Image.Image:
    """Decode a compressed image container into an RGB PIL image.

    Alpha is dropped and palette/greyscale modes are expanded to RGB.

    Raises:
        DecodeError: if the bytes are empty, truncated or not a known format.
    """
    if not isinstance(encoded_bytes, (bytes, bytearray, memoryview)):
        raise DecodeError(
            f"Expected encoded image bytes, got {type(encoded_bytes).__name__}"
        )
    if len(encoded_bytes) == 0:
        raise DecodeError("Failed to decode image: empty input")

    try:
        with Image.open(io.BytesIO(bytes(encoded_bytes))) as image:
            # force a full decode so truncated payloads fail here
            image.load()
            return image.convert("RGB")
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc


def _check_imgsz(imgsz) -> int:
    if isinstance(imgsz, bool) or not isinstance(imgsz, (int, np.integer)):
        raise ValueError(f"imgsz must be a positive integer, got {imgsz!r}")
    if imgsz <= 0:
        raise ValueError(f"imgsz must be a positive integer, got {imgsz}")
    return int(imgsz)


def prepare(encoded_bytes: EncodedImage, imgsz: int) -> InputTensor:
    """
    Build the NCHW input tensor for one encoded image.

    The image is resized with bilinear resampling directly to
    ``imgsz x imgsz`` regardless of its aspect ratio (no letterboxing, no
    crop), then each channel byte is divided by 255.

    Args:
        encoded_bytes: PNG/JPEG/... container bytes.
        imgsz: Side length of the square model input.

    Returns:
        InputTensor with ``3 * imgsz * imgsz`` float32 values.

    Raises:
        ValueError: if ``imgsz`` is not a positive integer.
        DecodeError: if the image cannot be decoded.
    """
    imgsz = _check_imgsz(imgsz)
    image = decode_image(encoded_bytes)
    logger.debug("Decoded image %dx%d, resizing to %d", image.width, image.height, imgsz)

    resized = image.resize((imgsz, imgsz), Image.BILINEAR)
    pixels = np.asarray(resized, dtype=np.uint8)  # (H, W, 3)

    planar = pixels.transpose(2, 0, 1).astype(np.float32) / _SCALE
    data = np.ascontiguousarray(planar, dtype=np.float32).reshape(-1)

    return InputTensor(data=data, shape=(1, 3, imgsz, imgsz))
