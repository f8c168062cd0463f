# inference/model/backends/__init__.py

"""
Inference backend implementations.
"""

from .base import InferenceBackend, Outputs
from .onnx_backend import OnnxBackend

__all__ = [
    "InferenceBackend",
    "Outputs",
    "OnnxBackend",
]
