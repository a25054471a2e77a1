"""Concrete tensors: a shape plus the storage that backs it."""

from __future__ import annotations

from numbers import Integral
from typing import TYPE_CHECKING, Any, Hashable, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import RankMismatch
from .index_mapper import IndexMapper, mapper_for
from .shape import Shape, ShapeKind, ShapeLike, as_shape
from .storage import Storage

if TYPE_CHECKING:
    from .evaluator import ExecutionConfig
    from .ir import Add, LabeledView, Node, Permute, Sub


class Tensor:
    """N-dimensional array owning its element storage.

    Elements are laid out with dimension 0 varying fastest, so a ``[3, 2]``
    tensor created from ``[1, 2, 3, 4, 5, 6]`` holds ``1, 2, 3`` in its first
    column. The shape never changes after construction; element writes go
    through :meth:`set`, :meth:`set_linear` or item assignment.
    """

    __slots__ = ("_shape", "_storage", "_mapper", "_version")

    def __init__(self, shape: ShapeLike, dtype: Any = None, *, data: Optional[Sequence[Any]] = None):
        self._shape: Shape = as_shape(shape)
        self._storage = Storage(self._shape.size, dtype=dtype, data=data)
        self._mapper: IndexMapper = mapper_for(self._shape)
        self._version = 0

    # Construction ---------------------------------------------------------------
    @classmethod
    def new(cls, shape: ShapeLike, dtype: Any = None) -> "Tensor":
        return cls(shape, dtype)

    @classmethod
    def from_data(cls, shape: ShapeLike, data: Sequence[Any], dtype: Any = None) -> "Tensor":
        """Build a tensor from elements listed in linear (axis-0-fastest) order.

        Raises :class:`ShapeMismatch` when ``len(data)`` differs from the
        element count of ``shape``.
        """
        return cls(shape, dtype, data=data)

    @classmethod
    def from_expression(cls, node: "Node", config: Optional["ExecutionConfig"] = None) -> "Tensor":
        from .evaluator import Materializer

        return Materializer(config).run(node)

    @classmethod
    def from_numpy(cls, array: Any, kind: ShapeKind = ShapeKind.DYNAMIC) -> "Tensor":
        """Copy a numpy array so that ``tensor.get(c) == array[c]``."""
        arr = np.asarray(array)
        shape = as_shape(arr.shape, kind)
        return cls._from_storage(shape, Storage.wrap(arr.flatten(order="F")))

    @classmethod
    def full(cls, shape: ShapeLike, value: Any, dtype: Any = None) -> "Tensor":
        tensor = cls(shape, dtype if dtype is not None else np.asarray(value).dtype)
        tensor._storage.fill(value)
        return tensor

    @classmethod
    def _from_storage(cls, shape: Shape, storage: Storage) -> "Tensor":
        tensor = cls.__new__(cls)
        tensor._shape = shape
        tensor._storage = storage
        tensor._mapper = mapper_for(shape)
        tensor._version = 0
        return tensor

    # Structure ------------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def dim_sizes(self) -> Tuple[int, ...]:
        return self._shape.dim_sizes

    @property
    def rank(self) -> int:
        return self._shape.rank

    @property
    def size(self) -> int:
        return self._shape.size

    @property
    def dtype(self) -> np.dtype:
        return self._storage.dtype

    @property
    def version(self) -> int:
        return self._version

    def dim_size(self, axis: int) -> int:
        return self._shape.dim_size(axis)

    # Element access -------------------------------------------------------------
    def get_linear(self, offset: int) -> Any:
        return self._storage.get(offset)

    def set_linear(self, offset: int, value: Any) -> None:
        self._storage.set(offset, value)
        self._version += 1

    def get(self, coords: Sequence[int]) -> Any:
        return self._storage.get(self._mapper.coords_to_linear(_as_coords(coords)))

    def set(self, coords: Sequence[int], value: Any) -> None:
        self._storage.set(self._mapper.coords_to_linear(_as_coords(coords)), value)
        self._version += 1

    def __getitem__(self, coords) -> Any:
        return self.get(coords)

    def __setitem__(self, coords, value: Any) -> None:
        self.set(coords, value)

    def fill(self, value: Any) -> None:
        self._storage.fill(value)
        self._version += 1

    def initialize(self, low: float, high: float, seed: Optional[int] = None) -> None:
        """Overwrite every element with a value drawn uniformly from ``[low, high)``."""
        if high < low:
            raise ValueError(f"initialize requires low <= high, got {low} > {high}")
        rng = np.random.default_rng(seed)
        values = rng.uniform(low, high, size=self.size)
        if self.dtype.kind in "iu":
            values = np.floor(values)
        self._storage.write_block(0, values.astype(self.dtype, copy=False))
        self._version += 1

    # Conversion -----------------------------------------------------------------
    def numpy(self) -> np.ndarray:
        """Return a copy indexed like the tensor (``out[c] == self.get(c)``)."""
        return self._storage.numpy().reshape(self.dim_sizes, order="F").copy()

    def tolist(self) -> List[Any]:
        """Elements in linear order."""
        return self._storage.numpy().tolist()

    def clone(self) -> "Tensor":
        return Tensor._from_storage(self._shape, self._storage.clone())

    # Expression building --------------------------------------------------------
    def label(self, *labels: Hashable) -> "LabeledView":
        from .ops import label

        return label(self, labels)

    def __call__(self, *labels: Hashable) -> "LabeledView":
        return self.label(*labels)

    def permute(self, *axes: int) -> "Permute":
        from .ops import permute

        return permute(self, *axes)

    @property
    def T(self) -> "Permute":
        if self.rank != 2:
            raise RankMismatch("Transpose shorthand needs a rank-2 tensor", expected=2, actual=self.rank)
        return self.permute(1, 0)

    def __add__(self, other) -> "Add":
        from .ops import add

        return add(self, other)

    def __sub__(self, other) -> "Sub":
        from .ops import sub

        return sub(self, other)

    def __repr__(self) -> str:
        data_str = np.array2string(self._storage.numpy(), precision=4, suppress_small=True)
        return f"Tensor(shape={self._shape!r}, dtype={self.dtype}, data={data_str})"


def _as_coords(coords) -> Tuple[int, ...]:
    if isinstance(coords, tuple):
        return coords
    if isinstance(coords, Integral) and not isinstance(coords, bool):
        return (coords,)
    if isinstance(coords, list):
        return tuple(coords)
    raise TypeError(f"Tensor coordinates must be integers, got {type(coords).__name__}")
