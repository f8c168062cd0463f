"""
Error taxonomy for the preprocessing, inference and bridge layers.
"""


class HarupanError(Exception):
    """Base class for all errors raised by harupan."""


class DecodeError(HarupanError):
    """Image bytes could not be parsed as a supported image container."""


class UnsupportedOutputError(HarupanError):
    """Inference output holds a non-numeric leaf or an unrecognized shape."""


class LoadError(HarupanError):
    """A model asset is missing or cannot be opened by the runtime."""


class InferenceRuntimeError(HarupanError, RuntimeError):
    """The inference session is invalid or the runtime failed to execute."""
