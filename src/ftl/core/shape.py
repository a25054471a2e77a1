"""Fixed and dynamic tensor shapes.

Both variants expose the same read-only interface. ``FixedShape`` commits its
sizes when it is created and offers no way to change them; ``DynamicShape``
takes a size list produced at runtime, of any length. The kind only matters
when deciding what kind of shape an expression result carries.
"""

from __future__ import annotations

import math
from enum import Enum
from numbers import Integral
from typing import Iterable, Iterator, Optional, Sequence, Tuple, Union

from .exceptions import OutOfRange, ShapeError


class ShapeKind(Enum):
    FIXED = "fixed"
    DYNAMIC = "dynamic"


class Shape:
    """Ordered sequence of positive dimension sizes."""

    __slots__ = ("_dim_sizes", "_size", "_strides")

    kind: ShapeKind

    def __init__(self, dim_sizes: Iterable[int]):
        sizes = tuple(_coerce_size(value, axis) for axis, value in enumerate(dim_sizes))
        self._dim_sizes: Tuple[int, ...] = sizes
        self._size = math.prod(sizes)
        self._strides = _compute_strides(sizes)

    @property
    def dim_sizes(self) -> Tuple[int, ...]:
        return self._dim_sizes

    @property
    def rank(self) -> int:
        return len(self._dim_sizes)

    @property
    def size(self) -> int:
        return self._size

    @property
    def strides(self) -> Tuple[int, ...]:
        """Per-axis strides; axis 0 varies fastest in memory."""
        return self._strides

    def dim_size(self, axis: int) -> int:
        if not isinstance(axis, Integral) or isinstance(axis, bool):
            raise TypeError(f"Axis must be an integer, got {type(axis).__name__}")
        if axis < 0 or axis >= self.rank:
            raise OutOfRange(
                f"Axis {axis} is invalid for a rank-{self.rank} shape",
                axis=int(axis),
                index=int(axis),
                size=self.rank,
            )
        return self._dim_sizes[axis]

    def __len__(self) -> int:
        return self.rank

    def __iter__(self) -> Iterator[int]:
        return iter(self._dim_sizes)

    def __getitem__(self, axis: int) -> int:
        return self._dim_sizes[axis]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Shape):
            return self._dim_sizes == other._dim_sizes
        if isinstance(other, tuple):
            return self._dim_sizes == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dim_sizes)

    def __repr__(self) -> str:
        inner = ", ".join(str(s) for s in self._dim_sizes)
        return f"{type(self).__name__}({inner})"

    def with_kind(self, kind: ShapeKind) -> "Shape":
        if kind is self.kind:
            return self
        if kind is ShapeKind.FIXED:
            return FixedShape(*self._dim_sizes)
        return DynamicShape(self._dim_sizes)


class FixedShape(Shape):
    __slots__ = ()

    kind = ShapeKind.FIXED

    def __init__(self, *dim_sizes: int):
        if len(dim_sizes) == 1 and not isinstance(dim_sizes[0], Integral):
            raise TypeError("FixedShape takes the sizes as separate arguments, e.g. FixedShape(2, 3)")
        super().__init__(dim_sizes)


class DynamicShape(Shape):
    __slots__ = ()

    kind = ShapeKind.DYNAMIC

    def __init__(self, dim_sizes: Sequence[int]):
        if isinstance(dim_sizes, (str, bytes)) or not isinstance(dim_sizes, Iterable):
            raise TypeError("DynamicShape expects a sequence of dimension sizes")
        super().__init__(list(dim_sizes))


ShapeLike = Union[Shape, Sequence[int]]


def as_shape(value: ShapeLike, kind: Optional[ShapeKind] = None) -> Shape:
    """Coerce ``value`` to a :class:`Shape`.

    Existing shapes keep their kind unless ``kind`` asks for another one; plain
    sequences become dynamic shapes by default.
    """
    if isinstance(value, Shape):
        return value if kind is None else value.with_kind(kind)
    if isinstance(value, Integral):
        value = (int(value),)
    if kind is ShapeKind.FIXED:
        return FixedShape(*tuple(value))
    return DynamicShape(value)


def combine_kinds(*shapes: Shape) -> ShapeKind:
    if shapes and all(shape.kind is ShapeKind.FIXED for shape in shapes):
        return ShapeKind.FIXED
    return ShapeKind.DYNAMIC


def _coerce_size(value, axis: int) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ShapeError(f"Dimension size for axis {axis} must be an integer, got {value!r}")
    size = int(value)
    if size <= 0:
        raise ShapeError(f"Dimension size for axis {axis} must be positive, got {size}")
    return size


def _compute_strides(dim_sizes: Tuple[int, ...]) -> Tuple[int, ...]:
    strides = []
    stride = 1
    for size in dim_sizes:
        strides.append(stride)
        stride *= size
    return tuple(strides)
