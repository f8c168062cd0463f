"""
End-to-end inference: encoded image in, flat list of floats out.
"""

from __future__ import annotations

from typing import List

from harupan.postprocess import flatten
from harupan.preprocess import EncodedImage, prepare
from harupan.utils import get_logger

from .model.wrapper import SessionHandle

logger = get_logger(__name__)


def run_inference(handle: SessionHandle, image_bytes: EncodedImage, imgsz: int) -> List[float]:
    """Prepare ``image_bytes``, run it through ``handle`` and flatten the first output.

    Errors from each stage (``DecodeError``, ``InferenceRuntimeError``,
    ``UnsupportedOutputError``) propagate unchanged.
    """
    tensor = prepare(image_bytes, imgsz)
    output = handle.predict(tensor)
    result = flatten(output)
    logger.debug("Inference on %s produced %d values", handle.model_path, len(result))
    return result
