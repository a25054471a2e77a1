import numpy as np
import pytest

import ftl
from ftl import (
    DynamicShape,
    FixedShape,
    OutOfRange,
    RankMismatch,
    ShapeKind,
    ShapeMismatch,
    Tensor,
)


def test_new_tensor_is_zero_filled():
    t = Tensor.new(FixedShape(2, 3))
    assert t.size == 6
    assert t.rank == 2
    assert t.tolist() == [0.0] * 6
    assert t.dtype == np.float64
    assert ftl.zeros(2, 2).shape.kind is ShapeKind.DYNAMIC


def test_from_data_uses_linear_order():
    t = Tensor.from_data([3, 2], [1, 2, 3, 4, 5, 6])
    assert t[0, 0] == 1
    assert t[2, 0] == 3
    assert t[0, 1] == 4
    assert t.get_linear(5) == 6


def test_rank3_mapping():
    t = Tensor.from_data([2, 2, 2], [111, 211, 121, 221, 112, 212, 122, 222])
    assert t.get((0, 1, 1)) == 122
    assert t.get((1, 0, 1)) == 212


def test_from_data_length_mismatch():
    with pytest.raises(ShapeMismatch):
        Tensor.from_data([2, 2], [1, 2, 3])


def test_out_of_range_access_raises():
    t = Tensor.new([3, 3, 3])
    with pytest.raises(OutOfRange):
        t.get((3, 0, 0))
    with pytest.raises(OutOfRange):
        t[0, -1, 0]
    with pytest.raises(OutOfRange):
        t.get_linear(27)
    with pytest.raises(OutOfRange):
        t.set_linear(-1, 1.0)
    with pytest.raises(OutOfRange):
        t.dim_size(3)


def test_wrong_coordinate_count_raises():
    t = Tensor.new([3, 3])
    with pytest.raises(RankMismatch):
        t.get((1, 1, 1))


def test_writes_update_values_and_version():
    t = Tensor.new([2, 2])
    assert t.version == 0
    t[1, 1] = 5.0
    t.set((0, 1), 2.0)
    t.set_linear(0, 1.0)
    assert t.tolist() == [1.0, 0.0, 2.0, 5.0]
    assert t.version == 3
    t.fill(7.0)
    assert t.tolist() == [7.0] * 4
    assert t.version == 4


def test_initialize_is_seeded_and_bounded():
    a = Tensor.new([4, 5])
    b = Tensor.new([4, 5])
    a.initialize(-1.0, 1.0, seed=3)
    b.initialize(-1.0, 1.0, seed=3)
    assert a.tolist() == b.tolist()
    values = np.asarray(a.tolist())
    assert values.min() >= -1.0
    assert values.max() < 1.0


def test_initialize_integer_tensor():
    t = Tensor.new([10], dtype="int64")
    t.initialize(0, 5, seed=1)
    assert all(isinstance(v, int) and 0 <= v < 5 for v in t.tolist())


def test_initialize_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        Tensor.new([2]).initialize(1.0, 0.0)


def test_numpy_round_trip_keeps_indexing():
    arr = np.arange(24, dtype=np.float64).reshape(2, 3, 4)
    t = Tensor.from_numpy(arr)
    for coords in np.ndindex(arr.shape):
        assert t.get(coords) == arr[coords]
    np.testing.assert_array_equal(t.numpy(), arr)
    assert t.shape.kind is ShapeKind.DYNAMIC


def test_numpy_returns_copy():
    t = Tensor.from_data([2], [1.0, 2.0])
    arr = t.numpy()
    arr[0] = 99.0
    assert t[0] == 1.0


def test_clone_is_independent():
    t = Tensor.from_data([2], [1.0, 2.0])
    copy = t.clone()
    copy[0] = 10.0
    assert t[0] == 1.0
    assert copy.shape == t.shape


def test_full_infers_dtype():
    t = ftl.full([2, 2], 3)
    assert t.tolist() == [3, 3, 3, 3]
    assert t.dtype.kind == "i"


def test_shape_is_fixed_after_construction():
    t = Tensor.new(DynamicShape([2, 2]))
    with pytest.raises(AttributeError):
        t.shape = DynamicShape([4])


def test_transpose_requires_rank_two():
    with pytest.raises(RankMismatch):
        Tensor.new([2, 2, 2]).T
