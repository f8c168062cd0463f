from .model import ModelProvider, SessionHandle, make_backend
from .runner import run_inference
