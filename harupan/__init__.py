import logging

# Add NullHandler to prevent logs when used as library
logging.getLogger(__name__).addHandler(logging.NullHandler())

"""
Image-to-tensor bridge for ONNX Runtime inference.
"""

from .bridge import ChannelResult, InferenceChannel, MethodCall
from .errors import (
    DecodeError,
    HarupanError,
    InferenceRuntimeError,
    LoadError,
    UnsupportedOutputError,
)
from .inference import ModelProvider, SessionHandle, run_inference
from .postprocess import flatten, to_value
from .preprocess import InputTensor, decode_image, prepare
from .utils import get_logger  # Export for users
from .utils import setup_logging  # Export for users who want to enable logging

__version__ = "0.1.0"
