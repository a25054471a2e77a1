"""Functional entry points for building and evaluating tensor expressions."""

from __future__ import annotations

from typing import Any, Hashable, Optional, Sequence

from .evaluator import ExecutionConfig, Materializer
from .ir import Add, Contract, LabeledView, Node, Permute, Sub, as_node
from .tensor import Tensor


def add(left: Any, right: Any) -> Add:
    """Lazy elementwise sum; both operands must have identical dimension sizes."""
    return Add(as_node(left), as_node(right))


def sub(left: Any, right: Any) -> Sub:
    """Lazy elementwise difference ``left - right``."""
    return Sub(as_node(left), as_node(right))


def label(tensor: Tensor, labels: Sequence[Hashable]) -> LabeledView:
    if not isinstance(tensor, Tensor):
        raise TypeError(f"Only concrete tensors can be labeled, got {type(tensor).__name__}")
    return LabeledView(tensor, tuple(labels))


def contract(left: LabeledView, right: LabeledView) -> Contract:
    """Lazy contraction over the labels shared by ``left`` and ``right``.

    The result keeps the free labels of ``left`` followed by the free labels of
    ``right``, each group in operand order. With no shared labels this is the
    outer product.
    """
    for side, view in (("left", left), ("right", right)):
        if not isinstance(view, LabeledView):
            raise TypeError(f"contract expects labeled tensors, {side} operand is {type(view).__name__}")
    return Contract(left, right)


def permute(operand: Any, *axes: int) -> Permute:
    if len(axes) == 1 and isinstance(axes[0], (tuple, list)):
        axes = tuple(axes[0])
    return Permute(as_node(operand), tuple(axes))


def materialize(node: Any, config: Optional[ExecutionConfig] = None) -> Tensor:
    """Evaluate an expression (or copy a tensor) into a new concrete tensor."""
    if isinstance(node, (Node, Tensor)):
        return Materializer(config).run(node)
    raise TypeError(f"Cannot materialize {type(node).__name__}")
