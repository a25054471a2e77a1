from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _load_version
from typing import Any

from .core.evaluator import ExecutionConfig, Materializer
from .core.exceptions import (
    AccessError,
    DimensionSizeMismatch,
    DtypeError,
    DuplicateLabel,
    FtlError,
    LabelError,
    OperandModified,
    OutOfRange,
    RankMismatch,
    ShapeError,
    ShapeMismatch,
    ValueOverflow,
)
from .core.index_mapper import IndexMapper, coords_to_linear, linear_to_coords
from .core.ir import Add, Contract, LabeledView, Leaf, Permute, Sub
from .core.ops import add, contract, label, materialize, permute, sub
from .core.shape import DynamicShape, FixedShape, Shape, ShapeKind
from .core.shape_checker import ContractionPlan
from .core.tensor import Tensor

try:
    __version__ = _load_version("ftl-tensor")
except PackageNotFoundError:
    __version__ = "0.0.0"


def zeros(*dim_sizes: int, dtype: Any = None) -> Tensor:
    """Zero-filled tensor with a dynamic shape, e.g. ``zeros(3, 4)``."""
    return Tensor(DynamicShape(dim_sizes), dtype)


def full(dim_sizes, value: Any, dtype: Any = None) -> Tensor:
    return Tensor.full(dim_sizes, value, dtype)


__all__ = [
    "Tensor",
    "Shape",
    "FixedShape",
    "DynamicShape",
    "ShapeKind",
    "IndexMapper",
    "coords_to_linear",
    "linear_to_coords",
    "zeros",
    "full",
    "add",
    "sub",
    "label",
    "contract",
    "permute",
    "materialize",
    "LabeledView",
    "Leaf",
    "Add",
    "Sub",
    "Contract",
    "Permute",
    "ContractionPlan",
    "ExecutionConfig",
    "Materializer",
    "FtlError",
    "AccessError",
    "RankMismatch",
    "OutOfRange",
    "ShapeError",
    "ShapeMismatch",
    "DimensionSizeMismatch",
    "LabelError",
    "DuplicateLabel",
    "DtypeError",
    "ValueOverflow",
    "OperandModified",
    "__version__",
]
