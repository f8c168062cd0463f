"""
Flattening of runtime outputs into a single ordered list of floats.

Raw outputs are first converted at the runtime boundary into a small closed
set of shapes (``Scalar``, ``Sequence``, ``Block``), and the walk recurses
over those shapes only.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, List, Tuple, Union

import numpy as np

from .errors import UnsupportedOutputError


@dataclass(frozen=True)
class Scalar:
    value: float


@dataclass(frozen=True)
class Sequence:
    items: Tuple["Value", ...]


@dataclass(frozen=True)
class Block:
    """Dense numeric array; its C-order ravel is its depth-first traversal."""

    array: np.ndarray


Value = Union[Scalar, Sequence, Block]


def _is_numeric_scalar(obj: Any) -> bool:
    if isinstance(obj, (bool, np.bool_)):
        return False
    return isinstance(obj, (numbers.Integral, numbers.Real, np.integer, np.floating))


def to_value(raw: Any) -> Value:
    """Convert a raw inference output into the ``Value`` variant.

    Raises:
        UnsupportedOutputError: on any non-numeric leaf or unknown container.
    """
    if isinstance(raw, (Scalar, Sequence, Block)):
        return raw

    if _is_numeric_scalar(raw):
        try:
            return Scalar(float(raw))
        except OverflowError as exc:
            raise UnsupportedOutputError(f"Numeric leaf out of float range: {exc}") from exc

    if isinstance(raw, np.ndarray):
        if raw.dtype.kind in "iuf":
            return Block(raw)
        if raw.dtype == object:
            if raw.ndim == 0:
                return to_value(raw.item())
            return Sequence(tuple(to_value(item) for item in raw))
        raise UnsupportedOutputError(f"Unsupported array dtype: {raw.dtype}")

    if isinstance(raw, (list, tuple)):
        return Sequence(tuple(to_value(item) for item in raw))

    raise UnsupportedOutputError(f"Unsupported output type: {type(raw).__name__}")


def _walk(value: Value, out: List[float]) -> None:
    if isinstance(value, Scalar):
        out.append(float(np.float32(value.value)))
    elif isinstance(value, Block):
        out.extend(value.array.astype(np.float32, copy=False).ravel().tolist())
    elif isinstance(value, Sequence):
        for item in value.items:
            _walk(item, out)
    else:
        raise UnsupportedOutputError(f"Unsupported value: {type(value).__name__}")


def flatten(value: Any) -> List[float]:
    """
    Flatten a nested numeric structure depth-first, left to right.

    Every numeric leaf is converted to float32 precision. No shape validation
    is performed.

    Example:
        >>> flatten([[1.0, 2.0], [3.0, 4.0]])
        [1.0, 2.0, 3.0, 4.0]
    """
    out: List[float] = []
    _walk(to_value(value), out)
    return out
