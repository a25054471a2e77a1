from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Sequence, Tuple

import numpy as np

from .exceptions import (
    DimensionSizeMismatch,
    DtypeError,
    DuplicateLabel,
    RankMismatch,
    ShapeError,
    ShapeMismatch,
)
from .shape import Shape, ShapeKind, as_shape, combine_kinds


@dataclass(frozen=True)
class ContractionPlan:
    """Label classification for one contraction.

    ``reduced`` holds ``(label, left_axis, right_axis)`` triples in the order
    the labels appear on the left operand; ``free_left`` / ``free_right`` are
    axis positions of labels that appear on one side only, in operand order.
    """

    left_labels: Tuple[Hashable, ...]
    right_labels: Tuple[Hashable, ...]
    reduced: Tuple[Tuple[Hashable, int, int], ...]
    free_left: Tuple[int, ...]
    free_right: Tuple[int, ...]
    reduced_sizes: Tuple[int, ...]
    result_shape: Shape

    @property
    def reduction_size(self) -> int:
        return math.prod(self.reduced_sizes)

    @property
    def reduced_labels(self) -> Tuple[Hashable, ...]:
        return tuple(label for label, _, _ in self.reduced)

    @property
    def result_labels(self) -> Tuple[Hashable, ...]:
        left = tuple(self.left_labels[axis] for axis in self.free_left)
        right = tuple(self.right_labels[axis] for axis in self.free_right)
        return left + right

    @property
    def equation(self) -> str:
        return (
            f"{format_labels(self.left_labels)},{format_labels(self.right_labels)}"
            f"->{format_labels(self.result_labels)}"
        )


def validate_labels(rank: int, labels: Sequence[Hashable]) -> None:
    if len(labels) != rank:
        raise RankMismatch(
            f"Label list {{{_format_set(labels)}}} does not cover a rank-{rank} tensor",
            expected=rank,
            actual=len(labels),
        )
    seen: Dict[Hashable, int] = {}
    for axis, label in enumerate(labels):
        try:
            hash(label)
        except TypeError as exc:
            raise TypeError(f"Labels must be hashable, got {type(label).__name__}") from exc
        if label in seen:
            raise DuplicateLabel(
                f"Label repeated on axes {seen[label]} and {axis}; "
                "contracting an operand with itself is not supported",
                label=label,
            )
        seen[label] = axis


def check_elementwise(op: str, left: Shape, right: Shape) -> Shape:
    if left.dim_sizes != right.dim_sizes:
        if left.rank != right.rank:
            reason = f"rank {left.rank} vs rank {right.rank}"
        else:
            axes = [k for k, (a, b) in enumerate(zip(left, right)) if a != b]
            reason = "sizes differ on axes " + ", ".join(str(a) for a in axes)
        raise ShapeMismatch(
            f"{op}: operand shapes must be identical, {reason}",
            left=left.dim_sizes,
            right=right.dim_sizes,
        )
    return left


def check_elementwise_dtype(op: str, left: np.dtype, right: np.dtype) -> np.dtype:
    dtype = np.result_type(left, right)
    if op == "sub" and dtype.kind == "b":
        raise DtypeError(
            "sub: boolean operands do not support subtraction; convert one operand to an integer dtype",
            dtype=dtype,
        )
    return dtype


def plan_contraction(
    left_labels: Sequence[Hashable],
    left_shape: Shape,
    right_labels: Sequence[Hashable],
    right_shape: Shape,
) -> ContractionPlan:
    left_labels = tuple(left_labels)
    right_labels = tuple(right_labels)
    validate_labels(left_shape.rank, left_labels)
    validate_labels(right_shape.rank, right_labels)

    right_axes = {label: axis for axis, label in enumerate(right_labels)}
    reduced = []
    reduced_sizes = []
    free_left = []
    for axis_a, label in enumerate(left_labels):
        axis_b = right_axes.get(label)
        if axis_b is None:
            free_left.append(axis_a)
            continue
        size_a = left_shape.dim_sizes[axis_a]
        size_b = right_shape.dim_sizes[axis_b]
        if size_a != size_b:
            raise DimensionSizeMismatch(
                f"contract: reduced label joins axes {axis_a} and {axis_b} of different sizes",
                label=label,
                left=size_a,
                right=size_b,
            )
        reduced.append((label, axis_a, axis_b))
        reduced_sizes.append(size_a)
    reduced_set = {label for label, _, _ in reduced}
    free_right = [axis for axis, label in enumerate(right_labels) if label not in reduced_set]

    sizes = [left_shape.dim_sizes[a] for a in free_left] + [right_shape.dim_sizes[a] for a in free_right]
    result_shape = as_shape(sizes, combine_kinds(left_shape, right_shape))
    return ContractionPlan(
        left_labels=left_labels,
        right_labels=right_labels,
        reduced=tuple(reduced),
        free_left=tuple(free_left),
        free_right=tuple(free_right),
        reduced_sizes=tuple(reduced_sizes),
        result_shape=result_shape,
    )


def check_permutation(shape: Shape, axes: Sequence[int]) -> Shape:
    axes = tuple(axes)
    if sorted(axes) != list(range(shape.rank)):
        raise ShapeError(
            f"permute: axes ({', '.join(str(a) for a in axes)}) are not a permutation "
            f"of the {shape.rank} axes of {list(shape.dim_sizes)}"
        )
    sizes = [shape.dim_sizes[axis] for axis in axes]
    return as_shape(sizes, shape.kind if shape.kind is ShapeKind.FIXED else None)


def format_labels(labels: Iterable[Hashable]) -> str:
    items = list(labels)
    if all(isinstance(item, str) and len(item) == 1 for item in items):
        return "".join(items)
    return "[" + ",".join(str(item) for item in items) + "]"


def _format_set(labels: Iterable[Hashable]) -> str:
    items = [str(label) for label in labels]
    if not items:
        return "∅"
    return ", ".join(items)
