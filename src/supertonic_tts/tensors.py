"""
Tensor shaping and mask helpers.

Pure, allocate-and-copy conversions between nested numeric structures and
flat buffers with an explicit shape, plus the single length-to-mask routine
used for both text masks and latent masks. Element order is always
row-major (batch, then channel/feature, then time).
"""

from __future__ import annotations

from collections.abc import Sequence
from math import prod
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import AssetMalformedError, EmptyBatchError, InvalidLengthError


def shape_size(shape: Sequence[int]) -> int:
    """Return the number of elements described by a shape."""
    return int(prod(int(d) for d in shape))


def flatten_nested(nested: Any) -> tuple[NDArray[np.float32], tuple[int, ...]]:
    """Flatten a nested numeric structure into a buffer plus its shape.

    Args:
        nested: Scalar or arbitrarily nested lists/tuples of numbers

    Returns:
        Tuple of (flat float32 array, shape), outermost dimension first

    Raises:
        AssetMalformedError: If the structure is ragged or non-numeric
    """
    flat: list[float] = []
    shape = _infer_shape(nested)
    _flatten_into(nested, shape, 0, flat)
    return np.asarray(flat, dtype=np.float32), shape


def _infer_shape(nested: Any) -> tuple[int, ...]:
    shape: list[int] = []
    node = nested
    while isinstance(node, (list, tuple)):
        shape.append(len(node))
        if not node:
            break
        node = node[0]
    return tuple(shape)


def _flatten_into(node: Any, shape: tuple[int, ...], depth: int, out: list[float]) -> None:
    if depth == len(shape):
        if isinstance(node, (list, tuple)) or isinstance(node, bool):
            raise AssetMalformedError(f"Ragged nested array at depth {depth}")
        try:
            out.append(float(node))
        except (TypeError, ValueError) as e:
            raise AssetMalformedError(f"Non-numeric value in nested array: {node!r}") from e
        return

    if not isinstance(node, (list, tuple)) or len(node) != shape[depth]:
        raise AssetMalformedError(
            f"Ragged nested array: expected {shape[depth]} items at depth {depth}",
            {"expected_shape": list(shape)},
        )
    for child in node:
        _flatten_into(child, shape, depth + 1, out)


def unflatten(values: ArrayLike, shape: Sequence[int]) -> list[Any]:
    """Rebuild a nested list structure from a flat buffer and a shape.

    Raises:
        AssetMalformedError: If the buffer size does not match the shape
    """
    flat = np.asarray(values).reshape(-1)
    expected = shape_size(shape)
    if flat.size != expected:
        raise AssetMalformedError(
            f"Buffer has {flat.size} values but shape {list(shape)} needs {expected}"
        )
    return flat.reshape(tuple(int(d) for d in shape)).tolist()


def lengths_to_mask(
    lengths: ArrayLike,
    max_len: int | None = None,
) -> NDArray[np.float32]:
    """Convert per-item lengths to a (N, 1, max_len) float mask.

    mask[i, 0, j] is 1.0 when j < lengths[i], 0.0 otherwise.

    Args:
        lengths: One non-negative length per batch item
        max_len: Padded length; defaults to max(lengths)

    Returns:
        float32 mask of shape (N, 1, max_len)

    Raises:
        EmptyBatchError: If lengths is empty
        InvalidLengthError: If any length or max_len is negative
    """
    lengths_arr = np.asarray(lengths, dtype=np.int64).reshape(-1)
    if lengths_arr.size == 0:
        raise EmptyBatchError("Cannot build a mask for an empty batch")
    if (lengths_arr < 0).any():
        raise InvalidLengthError(
            "Lengths must be non-negative",
            {"lengths": lengths_arr.tolist()},
        )

    if max_len is None:
        max_len = int(lengths_arr.max())
    if max_len < 0:
        raise InvalidLengthError(f"max_len must be non-negative, got {max_len}")

    ids = np.arange(max_len, dtype=np.int64)
    mask = (ids[None, :] < lengths_arr[:, None]).astype(np.float32)
    return mask[:, None, :]
