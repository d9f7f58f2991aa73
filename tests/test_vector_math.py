import numpy as np
import pytest

from svdpp.engine.errors import DimensionMismatchError
from svdpp.models import vector_math as vm


def test_add_scale_dot():
    a = np.array([1.0, 2.0, 3.0])
    b = np.array([0.5, -1.0, 2.0])

    np.testing.assert_allclose(vm.add(a, b), [1.5, 1.0, 5.0])
    np.testing.assert_allclose(vm.subtract(a, b), [0.5, 3.0, 1.0])
    np.testing.assert_allclose(vm.scale(a, 2.0), [2.0, 4.0, 6.0])
    assert vm.dot(a, b) == pytest.approx(4.5)


def test_operations_do_not_modify_inputs():
    a = np.array([1.0, 2.0])
    b = np.array([3.0, 4.0])
    vm.add(a, b)
    vm.scale(a, 10.0)
    np.testing.assert_array_equal(a, [1.0, 2.0])
    np.testing.assert_array_equal(b, [3.0, 4.0])


@pytest.mark.parametrize("op", [vm.add, vm.subtract, vm.dot])
def test_length_mismatch_raises(op):
    with pytest.raises(DimensionMismatchError):
        op(np.zeros(2), np.zeros(3))


def test_check_length():
    out = vm.check_length([1, 2, 3], 3)
    assert out.dtype == np.float64
    with pytest.raises(DimensionMismatchError) as exc:
        vm.check_length(np.zeros(4), 3, "q")
    assert exc.value.expected == 3
    assert exc.value.actual == 4


def test_random_vector_range(rng):
    v = vm.random_vector(1000, rng)
    assert v.shape == (1000,)
    assert v.min() >= 0.0
    assert v.max() < 1.0
