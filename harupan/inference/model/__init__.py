# inference/model/__init__.py

"""
Model runtime package.
Provides the SessionHandle, the ModelProvider and backend implementations.
"""

from .provider import ModelProvider
from .wrapper import SessionHandle, make_backend
