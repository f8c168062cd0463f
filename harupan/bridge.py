"""
Method-call bridge between a host application and the inference pipeline.

A host invokes methods by name with named arguments and receives either a
success value or a structured error, the same contract as a platform method
channel:

    ``loadModel(assetPath)`` -> ``True``
    ``run(imageBytes, imgsz=640)`` -> flat list of floats
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .errors import HarupanError, InferenceRuntimeError, LoadError
from .inference.model.provider import ModelProvider
from .inference.model.wrapper import SessionHandle
from .inference.runner import run_inference
from .utils import get_logger

logger = get_logger(__name__)

CHANNEL = "harupan/onnx"
DEFAULT_IMGSZ = 640

BAD_ARGS = "bad_args"
LOAD_FAILED = "load_failed"
RUN_FAILED = "run_failed"
NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True)
class MethodCall:
    method: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def argument(self, name: str, default: Any = None) -> Any:
        value = (self.arguments or {}).get(name)
        return default if value is None else value


@dataclass(frozen=True)
class ChannelResult:
    """Outcome of one method call: a success value or a structured error."""

    success: bool
    value: Any = None
    code: Optional[str] = None
    message: Optional[str] = None
    details: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "ChannelResult":
        return cls(success=True, value=value)

    @classmethod
    def error(cls, code: str, message: str, details: Optional[str] = None) -> "ChannelResult":
        return cls(success=False, code=code, message=message, details=details)

    @classmethod
    def not_implemented(cls, method: str) -> "ChannelResult":
        return cls.error(NOT_IMPLEMENTED, f"Method not implemented: {method}")

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"result": self.value}
        return {"code": self.code, "message": self.message, "details": self.details}


class InferenceChannel:
    """
    Dispatches host method calls to the model provider and the runner.

    The channel owns a reference to the active ``SessionHandle``; a
    successful ``loadModel`` swaps it under a lock, and each ``run`` call
    passes the handle it observed into ``run_inference``.
    """

    def __init__(self, provider: ModelProvider, default_imgsz: int = DEFAULT_IMGSZ):
        self.provider = provider
        self.default_imgsz = default_imgsz
        self._active: Optional[SessionHandle] = None
        self._active_asset: Optional[str] = None
        self._lock = threading.Lock()
        self._methods: Dict[str, Callable[[MethodCall], ChannelResult]] = {
            "loadModel": self._load_model,
            "run": self._run,
        }

    @property
    def active_handle(self) -> Optional[SessionHandle]:
        with self._lock:
            return self._active

    @property
    def active_asset(self) -> Optional[str]:
        with self._lock:
            return self._active_asset

    def handle(self, call: MethodCall) -> ChannelResult:
        """Dispatch ``call`` and return its result; unknown methods are not implemented."""
        handler = self._methods.get(call.method)
        if handler is None:
            logger.warning("Unknown method on %s: %s", CHANNEL, call.method)
            return ChannelResult.not_implemented(call.method)
        return handler(call)

    def invoke(self, method: str, **arguments) -> ChannelResult:
        return self.handle(MethodCall(method, arguments))

    def _load_model(self, call: MethodCall) -> ChannelResult:
        asset_path = call.argument("assetPath", "")
        try:
            if not isinstance(asset_path, str):
                raise LoadError(f"assetPath must be a string, got {type(asset_path).__name__}")
            handle = self.provider.ensure_loaded(asset_path)
        except LoadError as exc:
            logger.exception("loadModel failed for %r", asset_path)
            return ChannelResult.error(LOAD_FAILED, "Failed to load model", type(exc).__name__)

        with self._lock:
            self._active = handle
            self._active_asset = asset_path
        return ChannelResult.ok(True)

    def _run(self, call: MethodCall) -> ChannelResult:
        image_bytes = call.argument("imageBytes")
        if image_bytes is None:
            return ChannelResult.error(BAD_ARGS, "Missing imageBytes")

        imgsz = call.argument("imgsz", self.default_imgsz)
        if isinstance(imgsz, bool) or not isinstance(imgsz, int) or imgsz <= 0:
            return ChannelResult.error(BAD_ARGS, f"imgsz must be a positive integer, got {imgsz!r}")

        handle = self.active_handle
        try:
            if handle is None:
                raise InferenceRuntimeError("Session not loaded")
            result = run_inference(handle, image_bytes, imgsz)
        except HarupanError as exc:
            logger.error("run failed: %s", exc)
            return ChannelResult.error(RUN_FAILED, str(exc), type(exc).__name__)

        return ChannelResult.ok(result)
