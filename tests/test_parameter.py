"""Tests for Parameter."""

import pytest
import numpy as np
import tensorflow as tf
from novograd_optimizer import Parameter


class TestParameter:
    """Test cases for the parameter container."""

    def test_wraps_existing_variable(self):
        """Test a tf.Variable is borrowed, not copied."""
        var = tf.Variable([1.0, 2.0], name="weights")
        param = Parameter(var)
        assert param.data is var
        assert param.grad is None
        assert param.name == var.name

    def test_converts_array_like(self):
        param = Parameter([[1.0, 2.0], [3.0, 4.0]], name="kernel")
        assert isinstance(param.data, tf.Variable)
        assert param.shape == (2, 2)
        assert param.dtype == tf.float32
        assert param.name == "kernel"

    def test_explicit_dtype(self):
        param = Parameter([1.0, 2.0], dtype=tf.float64)
        assert param.dtype == tf.float64

    def test_numpy_dtype_is_kept(self):
        param = Parameter(np.zeros((3,), dtype=np.float64))
        assert param.dtype == tf.float64

    def test_from_variables(self):
        variables = [tf.Variable([1.0]), tf.Variable([[2.0, 3.0]])]
        params = Parameter.from_variables(variables)
        assert all(p.data is var for p, var in zip(params, variables))

    def test_repr(self):
        param = Parameter([1.0], grad=np.array([0.5]), name="bias")
        text = repr(param)
        assert "bias" in text
        assert "grad=True" in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
