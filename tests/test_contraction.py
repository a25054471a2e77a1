import numpy as np
import pytest

from ftl import (
    Contract,
    DimensionSizeMismatch,
    DuplicateLabel,
    ExecutionConfig,
    FixedShape,
    RankMismatch,
    ShapeKind,
    Tensor,
    contract,
    label,
    materialize,
)

STRATEGIES = ["elementwise", "vectorized"]


def _worked_example():
    a = Tensor.from_data([3, 2], [1, 2, 3, 4, 5, 6])
    b = Tensor.from_data([2, 3], [7, 8, 9, 10, 11, 12])
    return a, b


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_matrix_product_worked_example(strategy):
    a, b = _worked_example()
    node = contract(label(a, ["i", "j"]), label(b, ["j", "k"]))
    result = materialize(node, ExecutionConfig(strategy=strategy))
    assert result.dim_sizes == (3, 3)
    assert result.rank == 2
    assert result.tolist() == [39, 54, 69, 49, 68, 87, 59, 82, 105]


def test_operator_syntax_builds_contraction():
    a, b = _worked_example()
    node = a("i", "j") * b("j", "k")
    assert isinstance(node, Contract)
    assert node.plan.reduced_labels == ("j",)
    assert node.plan.result_labels == ("i", "k")
    assert node.shape == (3, 3)
    assert node.materialize()[1, 0] == 54


def test_free_labels_keep_operand_order():
    a = Tensor.new([2, 3, 4])
    b = Tensor.new([5, 3])
    node = a("x", "r", "y") * b("z", "r")
    assert node.shape == (2, 4, 5)
    assert node.plan.free_left == (0, 2)
    assert node.plan.free_right == (0,)
    assert node.plan.reduction_size == 3


def test_duplicate_label_rejected_before_evaluation():
    a = Tensor.new([2, 2])
    with pytest.raises(DuplicateLabel) as info:
        label(a, ["i", "i"])
    assert info.value.label == "i"


def test_label_count_must_match_rank():
    a = Tensor.new([2, 2])
    with pytest.raises(RankMismatch):
        a.label("i")


def test_reduced_sizes_must_agree():
    a = Tensor.new([3, 2])
    b = Tensor.new([4, 3])
    with pytest.raises(DimensionSizeMismatch) as info:
        a("i", "j") * b("j", "k")
    assert info.value.label == "j"
    assert (info.value.left, info.value.right) == (2, 4)


def test_outer_product_without_shared_labels():
    a = Tensor.from_data([2], [1.0, 2.0])
    b = Tensor.from_data([3], [3.0, 4.0, 5.0])
    result = (a("i") * b("k")).materialize()
    assert result.dim_sizes == (2, 3)
    np.testing.assert_allclose(result.numpy(), np.outer([1.0, 2.0], [3.0, 4.0, 5.0]))


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_full_contraction_yields_scalar(strategy):
    a = Tensor.from_data([3], [1.0, 2.0, 3.0])
    b = Tensor.from_data([3], [4.0, 5.0, 6.0])
    result = materialize(a("i") * b("i"), ExecutionConfig(strategy=strategy))
    assert result.rank == 0
    assert result.size == 1
    assert result.get(()) == pytest.approx(32.0)


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_matrix_times_stack_of_matrices(strategy):
    rng = np.random.default_rng(0)
    m = rng.normal(size=(2, 3))
    stack = rng.normal(size=(3, 4, 5))
    node = Tensor.from_numpy(m)("i", "j") * Tensor.from_numpy(stack)("j", "k", "b")
    result = materialize(node, ExecutionConfig(strategy=strategy)).numpy()
    assert result.shape == (2, 4, 5)
    for b in range(5):
        np.testing.assert_allclose(result[:, :, b], m @ stack[:, :, b])


def test_non_string_labels():
    a = Tensor.from_numpy(np.arange(6.0).reshape(2, 3))
    b = Tensor.from_numpy(np.arange(12.0).reshape(3, 4))
    result = materialize(a(0, 1) * b(1, 2), ExecutionConfig(strategy="vectorized"))
    np.testing.assert_allclose(result.numpy(), a.numpy() @ b.numpy())


def test_result_kind_fixed_only_when_both_fixed():
    fixed = Tensor.new(FixedShape(2, 2))
    dynamic = Tensor.new([2, 2])
    assert (fixed("i", "j") * fixed("j", "k")).shape.kind is ShapeKind.FIXED
    assert (fixed("i", "j") * dynamic("j", "k")).shape.kind is ShapeKind.DYNAMIC


def test_contract_requires_labeled_operands():
    a = Tensor.new([2])
    with pytest.raises(TypeError):
        contract(a, a("i"))
