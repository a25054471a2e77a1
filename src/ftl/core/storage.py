from __future__ import annotations

from numbers import Integral
from typing import Any, Iterable, Optional

import numpy as np

from .exceptions import OutOfRange, ShapeMismatch

DEFAULT_DTYPE = np.dtype(np.float64)


class Storage:
    """Contiguous one-dimensional element buffer.

    The length is fixed when the storage is created; element writes are the
    only mutation it supports.
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        size: int,
        dtype: Any = None,
        data: Optional[Iterable[Any]] = None,
    ):
        if isinstance(size, bool) or not isinstance(size, Integral) or size < 0:
            raise ValueError(f"Storage size must be a non-negative integer, got {size!r}")
        np_dtype = np.dtype(dtype) if dtype is not None else None
        if data is None:
            self._data = np.zeros(int(size), dtype=np_dtype or DEFAULT_DTYPE)
            return
        arr = np.array(data, dtype=np_dtype, copy=True).reshape(-1)
        if np_dtype is None and arr.dtype.kind not in "biufc":
            raise TypeError(f"Unsupported element type for tensor storage: {arr.dtype}")
        if arr.size != size:
            raise ShapeMismatch(
                f"Data holds {arr.size} elements but the shape requires {size}",
                left=(int(arr.size),),
                right=(int(size),),
            )
        self._data = arr

    @classmethod
    def wrap(cls, array: np.ndarray) -> "Storage":
        """Adopt an existing one-dimensional array without copying it."""
        storage = cls.__new__(cls)
        storage._data = array.reshape(-1)
        return storage

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    def __len__(self) -> int:
        return self.size

    def get(self, offset: int) -> Any:
        return self._data[self._check(offset)].item()

    def set(self, offset: int, value: Any) -> None:
        self._data[self._check(offset)] = value

    def fill(self, value: Any) -> None:
        self._data.fill(value)

    def write_block(self, start: int, values: np.ndarray) -> None:
        stop = start + len(values)
        if start < 0 or stop > self.size:
            raise OutOfRange(
                "Block write exceeds storage bounds",
                index=stop - 1,
                size=self.size,
            )
        self._data[start:stop] = values

    def clone(self) -> "Storage":
        return Storage.wrap(self._data.copy())

    def numpy(self) -> np.ndarray:
        view = self._data.view()
        view.flags.writeable = False
        return view

    def _check(self, offset: int) -> int:
        if isinstance(offset, bool) or not isinstance(offset, Integral):
            raise TypeError(f"Storage offsets must be integers, got {type(offset).__name__}")
        index = int(offset)
        if index < 0 or index >= self._data.size:
            raise OutOfRange(
                "Attempted to access an invalid storage element",
                index=index,
                size=int(self._data.size),
            )
        return index

    def __repr__(self) -> str:
        return f"Storage(size={self.size}, dtype={self.dtype})"
