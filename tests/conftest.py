# tests/conftest.py
"""
Pytest configuration and shared fixtures for harupan tests.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import io
from pathlib import Path
from typing import Callable

import numpy as np
import onnx
import pytest
from onnx import TensorProto, helper
from PIL import Image

from harupan.inference import ModelProvider

IMGSZ = 8


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------


def encode_image(array: np.ndarray, fmt: str = "PNG") -> bytes:
    """Encode a uint8 array into image container bytes."""
    buf = io.BytesIO()
    Image.fromarray(array).save(buf, format=fmt)
    return buf.getvalue()


def make_identity_model(path: Path, shape) -> Path:
    """Write an ONNX model whose single output is its input."""
    inp = helper.make_tensor_value_info("images", TensorProto.FLOAT, shape)
    out = helper.make_tensor_value_info("output", TensorProto.FLOAT, shape)
    node = helper.make_node("Identity", ["images"], ["output"])
    graph = helper.make_graph([node], "identity", [inp], [out])
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    onnx.save(model, str(path))
    return path


# ---------------------------------------------------------------------------
# Fixtures: images
# ---------------------------------------------------------------------------


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    """Factory producing PNG bytes for a solid RGB color."""

    def _make(color=(255, 0, 0), size=(16, 16)) -> bytes:
        width, height = size
        array = np.zeros((height, width, 3), dtype=np.uint8)
        array[...] = color
        return encode_image(array)

    return _make


@pytest.fixture
def noise_png() -> bytes:
    rng = np.random.default_rng(0)
    return encode_image(rng.integers(0, 256, (64, 64, 3), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Fixtures: models
# ---------------------------------------------------------------------------


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Assets folder with a static and a dynamic identity model."""
    assets = tmp_path / "assets"
    (assets / "models").mkdir(parents=True)
    make_identity_model(assets / "models" / "identity.onnx", [1, 3, IMGSZ, IMGSZ])
    make_identity_model(assets / "dynamic.onnx", ["batch", 3, "height", "width"])
    (assets / "broken.onnx").write_bytes(b"definitely not a protobuf model")
    return assets


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    return tmp_path / "files"


@pytest.fixture
def static_model(assets_dir: Path) -> Path:
    return assets_dir / "models" / "identity.onnx"


@pytest.fixture
def dynamic_model(assets_dir: Path) -> Path:
    return assets_dir / "dynamic.onnx"


@pytest.fixture
def provider(assets_dir: Path, files_dir: Path):
    provider = ModelProvider(assets_dir, files_dir, device="cpu")
    yield provider
    provider.close()
