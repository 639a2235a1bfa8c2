"""
NovoGrad Optimizer - Layer-wise Normalized Adaptive Gradient Descent

Based on: "Stochastic Gradient Methods with Layer-wise Adaptive Moments
for Training of Deep Networks" (Ginsburg et al., NVIDIA, 2019)
"""

from .errors import (
    ConfigurationError,
    InvalidGradientError,
    MissingGradientError,
    NovoGradError,
    ShapeMismatchError,
    UnknownParameterError,
)
from .optimizer import NovoGrad, OptimizerPhase, ParameterState, bias_corrected_step_size
from .parameter import Parameter

__version__ = "0.1.0"
__all__ = [
    "NovoGrad",
    "OptimizerPhase",
    "Parameter",
    "ParameterState",
    "bias_corrected_step_size",
    "NovoGradError",
    "ConfigurationError",
    "InvalidGradientError",
    "MissingGradientError",
    "ShapeMismatchError",
    "UnknownParameterError",
]
