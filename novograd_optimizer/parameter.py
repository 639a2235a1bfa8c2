# ============================================================================
# NOVOGRAD OPTIMIZER - Layer-wise Normalized Adaptive Gradient Descent
# Based on: "Stochastic Gradient Methods with Layer-wise Adaptive Moments
# for Training of Deep Networks" (Ginsburg et al., NVIDIA, 2019)
#
# Copyright (c) 2024 The novograd-optimizer authors
# Licensed under the MIT License
# ============================================================================

"""
Trainable parameter container.

A Parameter pairs a ``tf.Variable`` holding the current value with the
gradient the caller computed for the current iteration.
"""

from typing import Any, Iterable, List, Optional
import tensorflow as tf


class Parameter:
    """
    A tensor being optimized, together with its gradient.

    Args:
        data: Initial value. A ``tf.Variable`` is used as-is (the optimizer
            writes into it); anything else is copied into a new variable.
        grad: Optional gradient for the current iteration.
        name: Optional label, defaults to the variable name.
        dtype: Optional dtype used when ``data`` has to be converted.
    """

    def __init__(
        self,
        data: Any,
        grad: Optional[Any] = None,
        name: Optional[str] = None,
        dtype: Optional[tf.DType] = None,
    ) -> None:
        if isinstance(data, tf.Variable):
            self.data = data
        else:
            self.data = tf.Variable(tf.convert_to_tensor(data, dtype=dtype), name=name)
        self.grad = grad
        self.name = name or self.data.name

    @classmethod
    def from_variables(cls, variables: Iterable[tf.Variable]) -> List["Parameter"]:
        """Wrap existing variables, e.g. ``model.trainable_variables``."""
        return [cls(var) for var in variables]

    @property
    def shape(self) -> tf.TensorShape:
        return self.data.shape

    @property
    def dtype(self) -> tf.DType:
        return self.data.dtype

    def __repr__(self) -> str:
        has_grad = self.grad is not None
        return f"Parameter(name={self.name!r}, shape={self.shape}, dtype={self.dtype.name}, grad={has_grad})"
