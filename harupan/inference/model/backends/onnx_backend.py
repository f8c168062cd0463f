# inference/model/backends/onnx_backend.py

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import onnxruntime as ort

from harupan.errors import InferenceRuntimeError, LoadError
from harupan.utils import get_logger

from .base import Batch, InferenceBackend, Outputs

logger = get_logger(__name__)


class OnnxBackend(InferenceBackend):
    """
    ONNX Runtime backend implementation.

    Wraps a single ``ort.InferenceSession``. The first model input is fed with
    the NCHW batch and every model output is returned unchanged, so callers can
    decide how to interpret them.

    Example:
        >>> backend = OnnxBackend("model.onnx", "cpu")
        >>> outputs = backend.predict(np.zeros((1, 3, 640, 640), np.float32))
    """

    def __init__(self, model_path: str, device: str = "cpu"):
        """
        Initialize ONNX Runtime backend for model inference.

        Args:
            model_path (str): Path to the ONNX model file (.onnx extension).
            device (str, optional): Target device ("cuda" or "cpu").
                Defaults to "cpu".

        Raises:
            LoadError: if the runtime cannot open the model.
        """
        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = (
            ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        )
        sess_options.enable_cpu_mem_arena = True

        if device.lower().startswith("cuda"):
            # GPU execution: avoid hidden CPU fallback
            providers = ["CUDAExecutionProvider"]
            sess_options.intra_op_num_threads = 1
            sess_options.inter_op_num_threads = 1
        else:
            providers = ["CPUExecutionProvider"]

        logger.info("Initializing ONNX Runtime with providers=%s", providers)

        try:
            self.session: Optional[ort.InferenceSession] = ort.InferenceSession(
                model_path, sess_options=sess_options, providers=providers
            )
        except Exception as exc:
            logger.error("ONNX Runtime could not open %s: %s", model_path, exc)
            raise LoadError(f"Failed to load model {model_path}: {exc}") from exc

        logger.info(f"ONNX Runtime providers: {self.session.get_providers()}")

        inputs = self.session.get_inputs()
        self.input_names: List[str] = [inp.name for inp in inputs]
        self.input_shape: Sequence = tuple(inputs[0].shape) if inputs else ()
        self.output_names: List[str] = [out.name for out in self.session.get_outputs()]
        self.device = device.lower()

    def _check_shape(self, batch: np.ndarray) -> None:
        # symbolic or None dims are dynamic and accept anything
        expected = self.input_shape
        if len(expected) != batch.ndim:
            raise InferenceRuntimeError(
                f"Input rank mismatch: model expects {list(expected)}, got {list(batch.shape)}"
            )
        for want, got in zip(expected, batch.shape):
            if isinstance(want, int) and want > 0 and want != got:
                raise InferenceRuntimeError(
                    f"Input shape mismatch: model expects {list(expected)}, got {list(batch.shape)}"
                )

    def predict(self, batch: Batch) -> Outputs:
        """
        Run ONNX inference on input batch.

        Args:
            batch (np.ndarray): Input batch of shape (B, C, H, W), float32.

        Returns:
            Outputs: list with one entry per model output.

        Raises:
            InferenceRuntimeError: if the session is closed, the input shape
                does not match the model, or the runtime fails.
        """
        session = self.session
        if session is None:
            raise InferenceRuntimeError("Session not loaded")

        input_arr = np.asarray(batch, dtype=np.float32)
        self._check_shape(input_arr)

        try:
            ort_outputs = session.run(
                self.output_names, {self.input_names[0]: input_arr}
            )
        except Exception as exc:
            logger.error("ONNX Runtime inference failed: %s", exc)
            raise InferenceRuntimeError(f"Inference failed: {exc}") from exc

        logger.debug(
            "ONNX output types: %s", [type(out).__name__ for out in ort_outputs]
        )
        return ort_outputs

    def close(self) -> None:
        """Release ONNX Runtime session resources."""

        self.session = None

    def warmup(self, batch, runs: int = 2) -> None:
        """Warm up ONNX Runtime for optimal inference performance.

        Args:
            batch: Input batch for warmup inference. Same format as predict().
            runs (int, optional): Number of warmup iterations. Defaults to 2.
        """
        for _ in range(max(1, runs)):
            self.predict(batch)

        logger.info(
            "OnnxBackend warm-up completed (runs=%d, shape=%s).",
            runs,
            tuple(np.shape(batch)),
        )
