from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Hashable, Iterator, List, Optional, Tuple

import numpy as np

from .shape import Shape
from .shape_checker import (
    ContractionPlan,
    check_elementwise,
    check_elementwise_dtype,
    check_permutation,
    plan_contraction,
    validate_labels,
)
from .tensor import Tensor

if TYPE_CHECKING:
    from .evaluator import ExecutionConfig

Label = Hashable


@dataclass(frozen=True, eq=False)
class LabeledView:
    """A tensor seen through one label per axis, used as a contraction operand."""

    tensor: Tensor
    labels: Tuple[Label, ...]
    version: int = field(init=False, repr=False)

    def __post_init__(self):
        labels = tuple(self.labels)
        validate_labels(self.tensor.rank, labels)
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "version", self.tensor.version)

    @property
    def shape(self) -> Shape:
        return self.tensor.shape

    def axis_of(self, label: Label) -> int:
        return self.labels.index(label)

    def __mul__(self, other: "LabeledView") -> "Contract":
        if not isinstance(other, LabeledView):
            return NotImplemented
        return Contract(self, other)


@dataclass(frozen=True, eq=False)
class Node:
    """Base class of the lazy expression graph.

    Nodes only reference their operands; building one validates structure and
    infers the result shape, evaluation happens in the materializer.
    """

    shape: Shape = field(init=False, repr=False)

    @property
    def rank(self) -> int:
        return self.shape.rank

    @property
    def size(self) -> int:
        return self.shape.size

    def children(self) -> Tuple["Node", ...]:
        return ()

    def materialize(self, config: Optional["ExecutionConfig"] = None) -> Tensor:
        return Tensor.from_expression(self, config)

    def permute(self, *axes: int) -> "Permute":
        return Permute(self, tuple(axes))

    def __add__(self, other: Any) -> "Add":
        return Add(self, as_node(other))

    def __radd__(self, other: Any) -> "Add":
        return Add(as_node(other), self)

    def __sub__(self, other: Any) -> "Sub":
        return Sub(self, as_node(other))

    def __rsub__(self, other: Any) -> "Sub":
        return Sub(as_node(other), self)

    def _set_shape(self, shape: Shape) -> None:
        object.__setattr__(self, "shape", shape)


@dataclass(frozen=True, eq=False)
class Leaf(Node):
    tensor: Tensor
    version: int = field(init=False, repr=False)

    def __post_init__(self):
        self._set_shape(self.tensor.shape)
        object.__setattr__(self, "version", self.tensor.version)


@dataclass(frozen=True, eq=False)
class Add(Node):
    left: Node
    right: Node

    def __post_init__(self):
        self._set_shape(check_elementwise("add", self.left.shape, self.right.shape))

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class Sub(Node):
    left: Node
    right: Node

    def __post_init__(self):
        self._set_shape(check_elementwise("sub", self.left.shape, self.right.shape))
        check_elementwise_dtype("sub", result_dtype(self.left), result_dtype(self.right))

    def children(self) -> Tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class Contract(Node):
    left: LabeledView
    right: LabeledView
    plan: ContractionPlan = field(init=False, repr=False)

    def __post_init__(self):
        plan = plan_contraction(self.left.labels, self.left.shape, self.right.labels, self.right.shape)
        object.__setattr__(self, "plan", plan)
        self._set_shape(plan.result_shape)


@dataclass(frozen=True, eq=False)
class Permute(Node):
    operand: Node
    axes: Tuple[int, ...]

    def __post_init__(self):
        axes = tuple(self.axes)
        object.__setattr__(self, "axes", axes)
        self._set_shape(check_permutation(self.operand.shape, axes))

    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)


def as_node(value: Any) -> Node:
    if isinstance(value, Node):
        return value
    if isinstance(value, Tensor):
        return Leaf(value)
    raise TypeError(f"Cannot build a tensor expression from {type(value).__name__}")


def iter_nodes(node: Node) -> Iterator[Node]:
    """Yield every node of the graph in post-order (operands first)."""
    for child in node.children():
        yield from iter_nodes(child)
    yield node


def infer_shape(node: Node) -> Shape:
    """Recompute the result shape of ``node`` bottom-up, validating every step."""
    if isinstance(node, Leaf):
        return node.tensor.shape
    if isinstance(node, (Add, Sub)):
        op = "add" if isinstance(node, Add) else "sub"
        return check_elementwise(op, infer_shape(node.left), infer_shape(node.right))
    if isinstance(node, Contract):
        return plan_contraction(
            node.left.labels,
            node.left.tensor.shape,
            node.right.labels,
            node.right.tensor.shape,
        ).result_shape
    if isinstance(node, Permute):
        return check_permutation(infer_shape(node.operand), node.axes)
    raise TypeError(f"Unknown expression node {type(node).__name__}")


def operand_refs(node: Node) -> List[Tuple[Tensor, int]]:
    """Tensors read by ``node`` paired with the version seen when it was built."""
    refs: List[Tuple[Tensor, int]] = []
    for item in iter_nodes(node):
        if isinstance(item, Leaf):
            refs.append((item.tensor, item.version))
        elif isinstance(item, Contract):
            refs.append((item.left.tensor, item.left.version))
            refs.append((item.right.tensor, item.right.version))
    return refs


def describe(node: Node) -> str:
    if isinstance(node, Leaf):
        return "leaf"
    if isinstance(node, Add):
        return "add"
    if isinstance(node, Sub):
        return "sub"
    if isinstance(node, Contract):
        return f"contract {node.plan.equation}"
    if isinstance(node, Permute):
        return f"permute {','.join(str(a) for a in node.axes)}"
    return type(node).__name__.lower()


def result_dtype(node: Node) -> np.dtype:
    """NumPy result type of every operand tensor read by ``node``."""
    return np.result_type(*(tensor.dtype for tensor, _ in operand_refs(node)))
