"""
Tests for the dimension-checked linear algebra.
"""

import math

import pytest
import torch

from rprop_forecast.exceptions import DimensionError, NumericDegeneracyError
from rprop_forecast.linalg import (
    Matrix,
    Vector,
    identity,
    orthogonalize,
    random_fill,
    round_to,
    sgn,
    sigmoid,
    sigmoid_inv,
)


def test_matrix_add_then_subtract_is_identity():
    """(A + B) - B == A"""
    a = random_fill(3, 4, -1.0, 1.0, generator=1)
    b = random_fill(3, 4, -1.0, 1.0, generator=2)

    result = (a + b) - b

    assert result.allclose(a, atol=1e-12)


def test_matrix_times_identity():
    """A . I == A"""
    a = random_fill(3, 4, -5.0, 5.0, generator=3)

    assert a.matmul(identity(4)).allclose(a)
    assert identity(3).matmul(a).allclose(a)


def test_matrix_shape_mismatch_raises():
    """Incompatible shapes are rejected, never broadcast"""
    a = Matrix.zeros(2, 3)
    b = Matrix.zeros(3, 2)

    with pytest.raises(DimensionError) as excinfo:
        a.add(b)
    assert "Matrix.add" in str(excinfo.value)

    with pytest.raises(DimensionError):
        a.subtract(b)
    with pytest.raises(DimensionError):
        a.hadamard(b)
    with pytest.raises(DimensionError):
        a.matmul(a)
    with pytest.raises(DimensionError):
        a.matvec(Vector([1.0, 2.0]))
    with pytest.raises(DimensionError):
        a.add_(b)


def test_vector_length_mismatch_raises():
    """Binary vector operations require equal length"""
    v = Vector([1.0, 2.0, 3.0])
    w = Vector([1.0, 2.0])

    for op in (v.add, v.subtract, v.multiply, v.dot, v.add_):
        with pytest.raises(DimensionError):
            op(w)


def test_vector_construction():
    """Vectors copy their input and must be one-dimensional"""
    values = [1.0, 2.0, 3.0]
    v = Vector(values)
    values[0] = 100.0

    assert len(v) == 3
    assert v[0] == 1.0
    assert Vector(x * 2 for x in range(3)).tolist() == [0.0, 2.0, 4.0]
    assert Vector.full(2, 0.5).tolist() == [0.5, 0.5]

    with pytest.raises(DimensionError):
        Vector([[1.0, 2.0], [3.0, 4.0]])


def test_vector_operations_return_new_vectors():
    """Plain operations leave the operands untouched"""
    v = Vector([1.0, 2.0])
    w = Vector([3.0, 5.0])

    assert (v + w).tolist() == [4.0, 7.0]
    assert (w - v).tolist() == [2.0, 3.0]
    assert (v * w).tolist() == [3.0, 10.0]
    assert (v * 2).tolist() == [2.0, 4.0]
    assert v @ w == pytest.approx(13.0)
    assert v.tolist() == [1.0, 2.0]

    v.add_(w)
    assert v.tolist() == [4.0, 7.0]


def test_vector_norms_and_reshaping():
    """Norms, drop_last, append and concat"""
    v = Vector([3.0, 4.0])

    assert v.norm() == pytest.approx(5.0)
    assert v.norm2() == pytest.approx(25.0)
    assert v.drop_last().tolist() == [3.0]
    assert v.append(1.0).tolist() == [3.0, 4.0, 1.0]
    assert v.concat(Vector([5.0])).tolist() == [3.0, 4.0, 5.0]
    assert v.apply(lambda x: x * 10).tolist() == [30.0, 40.0]


def test_vector_matrix_products():
    """v . M and M . v"""
    m = Matrix([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

    assert Vector([1.0, 2.0]).matmul(m).tolist() == [9.0, 12.0, 15.0]
    assert m.matvec(Vector([1.0, 0.0, -1.0])).tolist() == [-2.0, -2.0]
    assert (m @ Vector([1.0, 1.0, 1.0])).tolist() == [6.0, 15.0]

    with pytest.raises(DimensionError):
        Vector([1.0, 2.0, 3.0]).matmul(m)


def test_dyadic_product():
    """Outer product has shape len(a) x len(b)"""
    a = Vector([1.0, 2.0])
    b = Vector([3.0, 4.0, 5.0])

    outer = a.dyadic(b)

    assert outer.shape == (2, 3)
    assert outer.tolist() == [[3.0, 4.0, 5.0], [6.0, 8.0, 10.0]]


def test_rows():
    """Row extraction copies, row replacement checks the length"""
    m = Matrix([[1.0, 2.0], [3.0, 4.0]])

    row = m.extract_row(1)
    row[0] = 100.0
    assert m[1, 0] == 3.0

    m.set_row(0, Vector([7.0, 8.0]))
    assert m.tolist() == [[7.0, 8.0], [3.0, 4.0]]

    with pytest.raises(DimensionError):
        m.set_row(0, Vector([1.0, 2.0, 3.0]))

    assert m.drop_last_column().tolist() == [[7.0], [3.0]]


def test_matrix_sign_and_fill():
    """sign keeps zeros, fill_ mutates in place"""
    m = Matrix([[-2.0, 0.0, 3.0]])

    assert m.sign().tolist() == [[-1.0, 0.0, 1.0]]
    assert m.fill_(0.1).tolist() == [[0.1, 0.1, 0.1]]


def test_random_fill_bounds_and_seed():
    """Uniform draws stay in range and are reproducible with a seed"""
    a = random_fill(5, 7, -0.01, 0.01, generator=42)
    b = random_fill(5, 7, -0.01, 0.01, generator=42)

    assert a == b
    assert bool((a.data >= -0.01).all()) and bool((a.data < 0.01).all())


def test_orthogonalize_rows_are_orthogonal():
    """Every row is orthogonal to all earlier rows"""
    m = random_fill(4, 6, -1.0, 1.0, generator=7)
    first_row = m.extract_row(0)

    orthogonalize(m)

    assert m.extract_row(0) == first_row
    for r in range(1, 4):
        for i in range(r):
            assert abs(m.extract_row(r).dot(m.extract_row(i))) < 1e-10


def test_orthogonalize_more_rows_than_columns():
    """Only the first min(rows, cols) rows are processed"""
    m = random_fill(4, 2, -1.0, 1.0, generator=11)
    untouched = [m.extract_row(r) for r in (2, 3)]

    orthogonalize(m)

    assert abs(m.extract_row(0).dot(m.extract_row(1))) < 1e-10
    assert [m.extract_row(r) for r in (2, 3)] == untouched


def test_orthogonalize_zero_row_raises():
    """A zero-norm row cannot serve as projection divisor"""
    m = Matrix([[0.0, 0.0], [1.0, 1.0]])

    with pytest.raises(NumericDegeneracyError):
        orthogonalize(m)


def test_sigmoid_inverse_roundtrip():
    """sigmoid(sigmoid_inv(y)) == y on (0, 1)"""
    for y in [1e-6, 0.01, 0.2, 0.5, 0.73, 0.999]:
        assert sigmoid(sigmoid_inv(y)) == pytest.approx(y, rel=1e-9)


def test_sigmoid_range():
    """sigmoid stays strictly inside (0, 1) for moderate input"""
    for x in range(-30, 31):
        assert 0.0 < sigmoid(float(x)) < 1.0
    assert sigmoid(0.0) == 0.5
    assert sigmoid(-1000.0) == pytest.approx(0.0)


def test_sigmoid_inv_outside_domain_raises():
    """sigmoid_inv is undefined at and beyond 0 and 1"""
    for y in [0.0, 1.0, -0.5, 1.5]:
        with pytest.raises(NumericDegeneracyError):
            sigmoid_inv(y)


def test_sgn_and_round():
    """Scalar helpers"""
    assert sgn(-3.2) == -1.0
    assert sgn(0.0) == 0.0
    assert sgn(1e-12) == 1.0
    assert round_to(3.14159, 2) == pytest.approx(3.14)
    assert round_to(-2.5, 0) == pytest.approx(-3.0)
    assert math.isclose(round_to(0.125, 2), 0.13)


def test_tensors_are_float64():
    """Storage precision is double"""
    assert Vector([1, 2]).data.dtype == torch.float64
    assert Matrix([[1, 2]]).data.dtype == torch.float64


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
