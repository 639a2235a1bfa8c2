# ============================================================================
# NOVOGRAD OPTIMIZER - Layer-wise Normalized Adaptive Gradient Descent
# Based on: "Stochastic Gradient Methods with Layer-wise Adaptive Moments
# for Training of Deep Networks" (Ginsburg et al., NVIDIA, 2019)
#
# Copyright (c) 2024 The novograd-optimizer authors
# Licensed under the MIT License
# ============================================================================

"""Exceptions raised by the NovoGrad optimizer."""


class NovoGradError(Exception):
    """Base class for all optimizer errors."""


class ConfigurationError(NovoGradError, ValueError):
    """Invalid hyperparameter or parameter list."""


class ShapeMismatchError(NovoGradError, ValueError):
    """A parameter's gradient does not match the shape of its data."""


class MissingGradientError(NovoGradError, ValueError):
    """step() was called while a managed parameter has no gradient."""


class UnknownParameterError(NovoGradError, KeyError):
    """Lookup of a parameter, variable or handle the optimizer does not manage."""


class InvalidGradientError(NovoGradError, ValueError):
    """A parameter's gradient cannot be converted to a numeric tensor."""
