import numpy as np
import pytest

from ftl import (
    Add,
    DynamicShape,
    FixedShape,
    ShapeKind,
    ShapeMismatch,
    Sub,
    Tensor,
    add,
    materialize,
    sub,
)


def test_operators_build_lazy_nodes():
    a = Tensor.from_data([2], [1.0, 2.0])
    b = Tensor.from_data([2], [3.0, 4.0])
    node = a + b
    assert isinstance(node, Add)
    assert isinstance(node - a, Sub)
    assert isinstance(add(a, b), Add)
    assert isinstance(sub(a, b), Sub)
    b[0] = 30.0
    assert materialize(a + b).tolist() == [31.0, 6.0]


def test_shape_mismatch_raised_at_construction():
    a = Tensor.new([2, 3])
    b = Tensor.new([3, 2])
    with pytest.raises(ShapeMismatch) as info:
        a + b
    assert info.value.left == (2, 3)
    assert info.value.right == (3, 2)
    assert a.version == 0 and b.version == 0
    assert a.tolist() == [0.0] * 6


def test_rank_mismatch_between_operands():
    with pytest.raises(ShapeMismatch, match="rank 1 vs rank 2"):
        Tensor.new([4]) - Tensor.new([2, 2])


def test_result_kind_follows_left_operand():
    fixed = Tensor.new(FixedShape(2, 2))
    dynamic = Tensor.new(DynamicShape([2, 2]))
    assert (fixed + dynamic).shape.kind is ShapeKind.FIXED
    assert (dynamic + fixed).shape.kind is ShapeKind.DYNAMIC
    assert materialize(fixed - dynamic).shape.kind is ShapeKind.FIXED


def test_nested_expression_tree():
    a = Tensor.from_data([3], [1, 2, 3])
    b = Tensor.from_data([3], [10, 20, 30])
    c = Tensor.from_data([3], [100, 200, 300])
    result = ((a + b) - (c - a)).materialize()
    assert result.tolist() == [-88, -176, -264]
    assert result.dtype.kind == "i"


def test_mixed_dtypes_promote():
    a = Tensor.from_data([2], [1, 2])
    b = Tensor.from_data([2], [0.5, 0.25])
    result = materialize(a + b)
    assert result.dtype == np.float64
    assert result.tolist() == [1.5, 2.25]


def test_materialize_tensor_copies_it():
    a = Tensor.from_data([2], [1.0, 2.0])
    copy = materialize(a)
    copy[0] = 5.0
    assert a[0] == 1.0


def test_materialize_rejects_other_values():
    with pytest.raises(TypeError):
        materialize([1, 2, 3])
    with pytest.raises(TypeError):
        Tensor.new([2]) + 1.0
