"""Conversion between coordinates and linear storage offsets.

The layout is fixed: dimension 0 varies fastest. For a ``[3, 2]`` shape the
linear order is ``(0,0), (1,0), (2,0), (0,1), (1,1), (2,1)``, which is what
numpy calls Fortran order.
"""

from __future__ import annotations

import functools
import itertools
from numbers import Integral
from typing import Iterator, Sequence, Tuple

import numpy as np

from .exceptions import OutOfRange, RankMismatch
from .shape import Shape, ShapeLike, as_shape


class IndexMapper:
    def __init__(self, shape: ShapeLike):
        self.shape = as_shape(shape)
        self.strides = self.shape.strides

    def coords_to_linear(self, coords: Sequence[int]) -> int:
        dim_sizes = self.shape.dim_sizes
        if len(coords) != len(dim_sizes):
            raise RankMismatch(
                f"Wrong number of coordinates for a rank-{len(dim_sizes)} tensor",
                expected=len(dim_sizes),
                actual=len(coords),
            )
        offset = 0
        for axis, (coord, size, stride) in enumerate(zip(coords, dim_sizes, self.strides)):
            index = _coerce_index(coord)
            if index < 0 or index >= size:
                raise OutOfRange(
                    "Attempted to access an invalid tensor element",
                    axis=axis,
                    index=index,
                    size=size,
                )
            offset += index * stride
        return offset

    def linear_to_coords(self, offset: int) -> Tuple[int, ...]:
        offset = self.check_linear(offset)
        dim_sizes = self.shape.dim_sizes
        if not dim_sizes:
            return ()
        coords = [offset % dim_sizes[0]]
        mem_offset = dim_sizes[0]
        for size in dim_sizes[1:]:
            coords.append((offset % (mem_offset * size)) // mem_offset)
            mem_offset *= size
        return tuple(coords)

    def check_linear(self, offset: int) -> int:
        index = _coerce_index(offset)
        if index < 0 or index >= self.shape.size:
            raise OutOfRange(
                "Attempted to access an invalid linear offset",
                index=index,
                size=self.shape.size,
            )
        return index

    def iter_coords(self) -> Iterator[Tuple[int, ...]]:
        """Yield every coordinate in linear-offset order."""
        ranges = [range(size) for size in reversed(self.shape.dim_sizes)]
        for reversed_coords in itertools.product(*ranges):
            yield reversed_coords[::-1]

    def unravel(self, offsets: np.ndarray) -> Tuple[np.ndarray, ...]:
        """Vectorised ``linear_to_coords`` over an array of offsets."""
        offsets = np.asarray(offsets, dtype=np.int64)
        if not self.shape.rank:
            return ()
        if offsets.size and (offsets.min() < 0 or offsets.max() >= self.shape.size):
            bad = int(offsets[(offsets < 0) | (offsets >= self.shape.size)][0])
            raise OutOfRange(
                "Attempted to access an invalid linear offset",
                index=bad,
                size=self.shape.size,
            )
        return np.unravel_index(offsets, self.shape.dim_sizes, order="F")

    def __repr__(self) -> str:
        return f"IndexMapper(dim_sizes={self.shape.dim_sizes}, strides={self.strides})"


def coords_to_linear(shape: ShapeLike, coords: Sequence[int]) -> int:
    return IndexMapper(shape).coords_to_linear(coords)


def linear_to_coords(shape: ShapeLike, offset: int) -> Tuple[int, ...]:
    return IndexMapper(shape).linear_to_coords(offset)


def mapper_for(shape: Shape) -> IndexMapper:
    return _cached_mapper(shape.dim_sizes)


@functools.lru_cache(maxsize=256)
def _cached_mapper(dim_sizes: Tuple[int, ...]) -> IndexMapper:
    # Shapes are immutable, so one mapper per distinct size tuple is enough.
    return IndexMapper(dim_sizes)


def _coerce_index(value) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"Tensor indices must be integers, got {type(value).__name__}")
    return int(value)
