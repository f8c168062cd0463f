# inference/model/wrapper.py

"""
Main entry point for model inference.

Creates the backend for a model file and exposes it through an explicitly
owned ``SessionHandle`` that callers pass into each inference call.
"""

from __future__ import annotations

import os
import threading
from typing import Any, Optional

import numpy as np

from harupan.errors import InferenceRuntimeError, LoadError
from harupan.preprocess import InputTensor
from harupan.utils import get_logger

from ..model.backends.base import InferenceBackend, Outputs

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".onnx", ".ort")


def make_backend(model_path: str, device: str) -> InferenceBackend:
    """Create the inference backend for a model file.

    Args:
        model_path (str): Path to an ONNX model (``.onnx`` or ``.ort``).
        device (str): "cpu" or "cuda".

    Returns:
        InferenceBackend: Initialized backend instance ready for inference.

    Raises:
        LoadError: if the file is missing, has an unsupported extension, or
            cannot be opened by the runtime.
    """
    logger.info(f"Creating backend for model: {model_path}")

    ext = os.path.splitext(model_path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise LoadError(
            f"Unsupported model format: {ext}. Supported: {list(SUPPORTED_EXTENSIONS)}"
        )
    if not os.path.isfile(model_path):
        raise LoadError(f"Model file not found: {model_path}")

    from .backends.onnx_backend import OnnxBackend

    backend = OnnxBackend(model_path, device)
    logger.info("ONNX backend created successfully")
    return backend


class SessionHandle:
    """
    Owned handle over one inference backend.

    The handle is the only way to reach a session: it is passed explicitly
    into ``run_inference`` and released with ``close()`` (or by leaving a
    ``with`` block). Predicting after close raises ``InferenceRuntimeError``.
    """

    def __init__(
        self,
        model_path: str,
        device: str = "cpu",
        backend: Optional[InferenceBackend] = None,
    ):
        logger.info(f"Initializing SessionHandle with {model_path} on {device}")
        self.model_path = model_path
        self.device = device
        self._lock = threading.Lock()
        self.backend: Optional[InferenceBackend] = (
            backend if backend is not None else make_backend(model_path, device)
        )

    @property
    def closed(self) -> bool:
        return self.backend is None

    def run(self, batch: np.ndarray) -> Outputs:
        """Run the backend and return all model outputs."""
        backend = self.backend
        if backend is None:
            raise InferenceRuntimeError("Session not loaded")
        logger.debug(f"Running prediction via {backend.__class__.__name__}")
        return backend.predict(batch)

    def predict(self, tensor: InputTensor) -> Any:
        """Feed one prepared tensor and return the first model output."""
        outputs = self.run(tensor.as_batch())
        if not outputs:
            raise InferenceRuntimeError("Model produced no outputs")
        return outputs[0]

    def warmup(self, batch=None, runs: int = 2) -> None:
        backend = self.backend
        if backend is None:
            raise InferenceRuntimeError("Session not loaded")
        if batch is None:
            batch = self._zero_batch(backend)
        if hasattr(backend, "warmup"):
            backend.warmup(batch=batch, runs=runs)
        else:
            logger.info(
                f"{backend.__class__.__name__} does not support warm-up. Skipping."
            )

    @staticmethod
    def _zero_batch(backend: InferenceBackend) -> np.ndarray:
        # only fully static input dims can be synthesized
        shape = tuple(getattr(backend, "input_shape", ()))
        if not shape or not all(isinstance(d, int) and d > 0 for d in shape):
            raise ValueError(
                f"warmup needs an explicit batch for input shape {list(shape)}"
            )
        return np.zeros(shape, dtype=np.float32)

    def close(self) -> None:
        """Release resources associated with the backend."""
        with self._lock:
            backend, self.backend = self.backend, None
        if backend is not None:
            logger.info("Closing SessionHandle for %s", self.model_path)
            backend.close()

    def __enter__(self) -> "SessionHandle":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"SessionHandle({self.model_path!r}, device={self.device!r}, {state})"
