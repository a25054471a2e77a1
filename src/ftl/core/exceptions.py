from __future__ import annotations

from typing import Any, Hashable, Optional, Sequence


class FtlError(Exception):
    """Base class for ftl-specific exceptions."""


class AccessError(FtlError, IndexError):
    """Raised when an element or axis accessor receives invalid input."""


class RankMismatch(AccessError):
    def __init__(
        self,
        message: str,
        *,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        detail = _format_counts(expected, actual)
        super().__init__(f"{message}{detail}")
        self.expected = expected
        self.actual = actual


class OutOfRange(AccessError):
    def __init__(
        self,
        message: str,
        *,
        axis: Optional[int] = None,
        index: Optional[int] = None,
        size: Optional[int] = None,
    ):
        super().__init__(f"{message}{_format_bounds(axis, index, size)}")
        self.axis = axis
        self.index = index
        self.size = size


class ShapeError(FtlError, ValueError):
    pass


class ShapeMismatch(ShapeError):
    def __init__(
        self,
        message: str,
        *,
        left: Optional[Sequence[int]] = None,
        right: Optional[Sequence[int]] = None,
    ):
        detail = ""
        if left is not None and right is not None:
            detail = f" ({_format_sizes(left)} vs {_format_sizes(right)})"
        super().__init__(f"{message}{detail}")
        self.left = tuple(left) if left is not None else None
        self.right = tuple(right) if right is not None else None


class DimensionSizeMismatch(ShapeError):
    def __init__(
        self,
        message: str,
        *,
        label: Optional[Hashable] = None,
        left: Optional[int] = None,
        right: Optional[int] = None,
    ):
        detail = ""
        if label is not None:
            detail = f" (label {label!r}: {left} vs {right})"
        super().__init__(f"{message}{detail}")
        self.label = label
        self.left = left
        self.right = right


class LabelError(FtlError, ValueError):
    pass


class DuplicateLabel(LabelError):
    def __init__(self, message: str, *, label: Optional[Hashable] = None):
        detail = f" (label {label!r})" if label is not None else ""
        super().__init__(f"{message}{detail}")
        self.label = label


class DtypeError(FtlError, TypeError):
    def __init__(self, message: str, *, dtype: Any = None):
        detail = f" (dtype {dtype})" if dtype is not None else ""
        super().__init__(f"{message}{detail}")
        self.dtype = dtype


class ValueOverflow(FtlError, OverflowError):
    def __init__(self, message: str, *, dtype: Any = None, value: Any = None):
        detail = ""
        if dtype is not None and value is not None:
            detail = f" ({value!r} does not fit {dtype})"
        super().__init__(f"{message}{detail}")
        self.dtype = dtype
        self.value = value


class OperandModified(FtlError, RuntimeError):
    def __init__(self, message: str, *, operand: Any = None):
        super().__init__(message)
        self.operand = operand


def _format_counts(expected: Optional[int], actual: Optional[int]) -> str:
    if expected is None and actual is None:
        return ""
    parts = []
    if expected is not None:
        parts.append(f"expected {expected}")
    if actual is not None:
        parts.append(f"got {actual}")
    return f" ({', '.join(parts)})"


def _format_bounds(axis: Optional[int], index: Optional[int], size: Optional[int]) -> str:
    if index is None:
        return ""
    location = f"index {index}"
    if axis is not None:
        location += f" on axis {axis}"
    if size is not None:
        location += f" of size {size}"
    return f" ({location}; indices are 0-based)"


def _format_sizes(sizes: Sequence[int]) -> str:
    return "[" + ", ".join(str(int(s)) for s in sizes) + "]"
