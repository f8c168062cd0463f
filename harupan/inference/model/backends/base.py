# inference/model/backends/base.py

"""
Abstract base protocol for inference backends.
"""

from __future__ import annotations

from typing import Any, List, Protocol

import numpy as np

Batch = np.ndarray
Outputs = List[Any]


class InferenceBackend(Protocol):
    """Protocol for all inference backend classes."""

    def predict(self, batch: Batch) -> Outputs:
        """Run inference on the input batch and return every model output."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...
