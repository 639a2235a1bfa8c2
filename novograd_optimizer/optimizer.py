# ============================================================================
# NOVOGRAD OPTIMIZER - Layer-wise Normalized Adaptive Gradient Descent
# Based on: "Stochastic Gradient Methods with Layer-wise Adaptive Moments
# for Training of Deep Networks" (Ginsburg et al., NVIDIA, 2019)
#
# Copyright (c) 2024 The novograd-optimizer authors
# Licensed under the MIT License
# ============================================================================

"""
NovoGrad optimizer implementation.

NovoGrad normalizes each parameter's gradient by a running estimate of that
parameter's squared gradient norm (one scalar per layer rather than one per
element), accumulates the normalized gradient into a momentum buffer and
applies Adam-style bias correction to the final step size.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import math
import threading

import tensorflow as tf

from .errors import (
    ConfigurationError,
    InvalidGradientError,
    MissingGradientError,
    ShapeMismatchError,
    UnknownParameterError,
)
from .parameter import Parameter


class OptimizerPhase(Enum):
    """Global initialization phase of a NovoGrad instance."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class ParameterState:
    """
    Per-parameter optimizer state.

    Attributes:
        step: Number of updates applied to the parameter.
        exp_avg_sq: Second moment ``v``, scalar EMA of the squared norm of
            the normalized gradient.
        exp_avg: First moment ``m``, same shape as the parameter.
        grad_ema: Scalar EMA of the raw squared gradient norm, ``None``
            until the first update.
    """

    __slots__ = ("step", "exp_avg_sq", "exp_avg", "grad_ema")

    def __init__(
        self,
        step: int,
        exp_avg_sq: tf.Tensor,
        exp_avg: tf.Tensor,
        grad_ema: Optional[tf.Tensor] = None,
    ) -> None:
        self.step = step
        self.exp_avg_sq = exp_avg_sq
        self.exp_avg = exp_avg
        self.grad_ema = grad_ema

    def __repr__(self) -> str:
        return f"ParameterState(step={self.step}, exp_avg_sq={float(self.exp_avg_sq):.6g})"


def bias_corrected_step_size(
    learning_rate: float, beta_1: float, beta_2: float, step: int
) -> float:
    """
    Step size for a parameter that has already received ``step`` updates.

    Equals ``learning_rate * sqrt(1 - beta_2) / (1 - beta_1)`` for ``step=0``
    and tends to ``learning_rate`` as ``step`` grows.
    """
    bias_correction1 = 1.0 - beta_1 ** (step + 1)
    bias_correction2 = 1.0 - beta_2 ** (step + 1)
    return learning_rate * math.sqrt(bias_correction2) / bias_correction1


def _squared_norm(tensor: tf.Tensor) -> tf.Tensor:
    return tf.square(tf.norm(tensor))


ParamLike = Union[Parameter, tf.Variable]


class NovoGrad:
    """
    NovoGrad optimizer over an explicit list of parameters.

    Each parameter gets a stable integer handle (its position in ``params``)
    and its state lives in an index-aligned table. State is created lazily on
    the first call to :meth:`step`, for all parameters at once.

    Example:
        ```python
        w = tf.Variable(tf.random.normal([3, 1]))
        optimizer = NovoGrad([w], learning_rate=0.01, weight_decay=1e-4)

        for x, y in dataset:
            with tf.GradientTape() as tape:
                loss = tf.reduce_mean(tf.square(x @ w - y))
            optimizer.apply_gradients(zip(tape.gradient(loss, [w]), [w]))
        ```

    Args:
        params: Parameters to optimize, as ``Parameter`` objects or
            ``tf.Variable``s (variables are wrapped and updated in place).
        learning_rate: Scale applied to the final update (default: 0.1).
        beta_1: Momentum decay, in (0, 1) (default: 0.95).
        beta_2: Second-moment decay, in (0, 1) (default: 0.98).
        epsilon: Stabilizer added to every denominator, > 0 (default: 1e-8).
        weight_decay: L2 coefficient added to the momentum input (default: 0).
        grad_averaging: Scale the normalized gradient by ``1 - beta_1``
            before it enters the momentum (default: False).

    Raises:
        ConfigurationError: On invalid hyperparameters, an empty parameter
            list or a parameter listed twice.
    """

    def __init__(
        self,
        params: Iterable[ParamLike],
        learning_rate: float = 0.1,
        beta_1: float = 0.95,
        beta_2: float = 0.98,
        epsilon: float = 1e-8,
        weight_decay: float = 0.0,
        grad_averaging: bool = False,
    ) -> None:
        # Validate parameters
        for name, beta in (("beta_1", beta_1), ("beta_2", beta_2)):
            if not 0.0 < beta < 1.0:
                raise ConfigurationError(f"{name} must be in (0, 1), got {beta}")
        if not epsilon > 0.0:
            raise ConfigurationError(f"epsilon must be > 0, got {epsilon}")
        if not weight_decay >= 0.0:
            raise ConfigurationError(f"weight_decay must be >= 0, got {weight_decay}")
        self._check_learning_rate(learning_rate)

        self._params: List[Parameter] = []
        self._handles: Dict[int, int] = {}
        for param in params:
            if not isinstance(param, Parameter):
                param = Parameter(param)
            key = id(param.data)
            if key in self._handles:
                raise ConfigurationError(f"parameter {param.name!r} is listed more than once")
            self._handles[key] = len(self._params)
            self._params.append(param)
        if not self._params:
            raise ConfigurationError("optimizer got an empty parameter list")

        self._learning_rate = float(learning_rate)
        self._beta_1 = float(beta_1)
        self._beta_2 = float(beta_2)
        self._epsilon = float(epsilon)
        self._weight_decay = float(weight_decay)
        self._grad_averaging = bool(grad_averaging)

        # State tracking (indexed by handle)
        self._phase = OptimizerPhase.UNINITIALIZED
        self._phase_lock = threading.Lock()
        self._states: List[Optional[ParameterState]] = [None] * len(self._params)
        self._iterations = 0

    @staticmethod
    def _check_learning_rate(learning_rate: float) -> None:
        if not learning_rate >= 0.0:
            raise ConfigurationError(f"learning_rate must be >= 0, got {learning_rate}")

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @learning_rate.setter
    def learning_rate(self, value: float) -> None:
        self._check_learning_rate(value)
        self._learning_rate = float(value)

    @property
    def params(self) -> Tuple[Parameter, ...]:
        return tuple(self._params)

    @property
    def phase(self) -> OptimizerPhase:
        return self._phase

    @property
    def iterations(self) -> int:
        """Number of completed ``step()`` calls."""
        return self._iterations

    def handle_of(self, param: Union[ParamLike, int]) -> int:
        """Return the stable integer handle of a managed parameter."""
        if isinstance(param, int):
            if not 0 <= param < len(self._params):
                raise UnknownParameterError(f"no parameter with handle {param}")
            return param
        data = param.data if isinstance(param, Parameter) else param
        try:
            return self._handles[id(data)]
        except KeyError:
            raise UnknownParameterError(f"{param!r} is not managed by this optimizer") from None

    def state_for(self, param: Union[ParamLike, int]) -> Optional[ParameterState]:
        """State of a parameter, or ``None`` before the first step."""
        return self._states[self.handle_of(param)]

    def _gradient_for(self, param: Parameter) -> tf.Tensor:
        """Fetch and check a parameter's gradient without touching its data."""
        if param.grad is None:
            raise MissingGradientError(f"parameter {param.name!r} has no gradient")
        try:
            if isinstance(param.grad, (tf.Tensor, tf.Variable)):
                grad = tf.cast(param.grad, param.dtype)
            else:
                grad = tf.convert_to_tensor(param.grad, dtype=param.dtype)
        except (TypeError, ValueError, tf.errors.OpError) as e:
            raise InvalidGradientError(
                f"gradient of parameter {param.name!r} is not a {param.dtype.name} tensor: {e}"
            ) from e
        if grad.shape != param.shape:
            raise ShapeMismatchError(
                f"gradient shape {grad.shape} does not match parameter "
                f"{param.name!r} shape {param.shape}"
            )
        return grad

    def _initialize_states(self, grads: List[tf.Tensor]) -> None:
        """Seed every parameter's moments from its first gradient."""
        with self._phase_lock:
            if self._phase is OptimizerPhase.ACTIVE:
                return
            for handle, (param, grad) in enumerate(zip(self._params, grads)):
                exp_avg_sq = _squared_norm(grad)
                exp_avg = grad / (tf.sqrt(exp_avg_sq) + self._epsilon) + self._weight_decay * param.data
                self._states[handle] = ParameterState(0, exp_avg_sq, exp_avg)
            self._phase = OptimizerPhase.ACTIVE

    def _update_parameter(self, handle: int, grad: tf.Tensor) -> None:
        """Apply one NovoGrad update to a single parameter."""
        param = self._params[handle]
        state = self._states[handle]

        g2 = _squared_norm(grad)
        if state.grad_ema is None:
            grad_ema = g2
        else:
            grad_ema = self._beta_2 * state.grad_ema + (1.0 - self._beta_2) * g2

        normalized = grad / (tf.sqrt(grad_ema) + self._epsilon)
        if self._grad_averaging:
            normalized = normalized * (1.0 - self._beta_1)

        exp_avg_sq = self._beta_2 * state.exp_avg_sq + (1.0 - self._beta_2) * _squared_norm(normalized)
        exp_avg = (
            self._beta_1 * state.exp_avg
            + normalized / (tf.sqrt(exp_avg_sq) + self._epsilon)
            + self._weight_decay * param.data
        )

        step_size = bias_corrected_step_size(
            self._learning_rate, self._beta_1, self._beta_2, state.step
        )
        param.data.assign_sub(step_size * exp_avg)

        state.step += 1
        state.exp_avg_sq = exp_avg_sq
        state.exp_avg = exp_avg
        state.grad_ema = grad_ema

    def step(self) -> None:
        """
        Update every managed parameter once using its current ``grad``.

        All gradients are checked before any parameter is written, so a
        failing call leaves data and state untouched. Gradients are not
        cleared.

        Raises:
            MissingGradientError: A parameter's ``grad`` is ``None``.
            InvalidGradientError: A gradient is not convertible to a tensor.
            ShapeMismatchError: A gradient's shape differs from its parameter.
        """
        grads = [self._gradient_for(param) for param in self._params]

        if self._phase is OptimizerPhase.UNINITIALIZED:
            self._initialize_states(grads)

        for handle, grad in enumerate(grads):
            self._update_parameter(handle, grad)
        self._iterations += 1

    def update_parameter(self, param: Union[ParamLike, int]) -> None:
        """
        Update a single managed parameter from its current ``grad``.

        Updates of different parameters share no state, so callers may run
        them on separate threads, one thread per parameter. If the optimizer
        is still uninitialized, every parameter's gradient is checked and all
        states are seeded once, under a lock, before the update. Does not
        advance :attr:`iterations`.

        Raises:
            UnknownParameterError: ``param`` is not managed.
            MissingGradientError, InvalidGradientError, ShapeMismatchError:
                As for :meth:`step`.
        """
        handle = self.handle_of(param)
        grad = self._gradient_for(self._params[handle])
        if self._phase is OptimizerPhase.UNINITIALIZED:
            self._initialize_states([self._gradient_for(p) for p in self._params])
        self._update_parameter(handle, grad)

    def apply_gradients(self, grads_and_vars: Iterable[Tuple[Any, ParamLike]]) -> int:
        """
        Set gradients from ``(grad, variable)`` pairs, then run :meth:`step`.

        The pairs must cover every managed parameter. Parameters left out
        have their ``grad`` cleared, so the step fails with
        :class:`MissingGradientError` before any data is written instead of
        reapplying a stale gradient.

        Returns:
            The number of completed steps.
        """
        pairs = [(grad, self.handle_of(var)) for grad, var in grads_and_vars]
        named = {handle for _, handle in pairs}
        for handle, managed in enumerate(self._params):
            if handle not in named:
                managed.grad = None
        for grad, handle in pairs:
            self._params[handle].grad = grad
        self.step()
        return self._iterations

    def zero_grad(self) -> None:
        """Clear the gradient of every managed parameter."""
        for param in self._params:
            param.grad = None

    def get_config(self) -> Dict[str, Any]:
        """Serialize optimizer configuration."""
        return {
            "learning_rate": self._learning_rate,
            "beta_1": self._beta_1,
            "beta_2": self._beta_2,
            "epsilon": self._epsilon,
            "weight_decay": self._weight_decay,
            "grad_averaging": self._grad_averaging,
        }

    @classmethod
    def from_config(cls, params: Iterable[ParamLike], config: Dict[str, Any]) -> "NovoGrad":
        return cls(params, **config)

    def print_state_stats(self) -> None:
        """Print optimizer state for debugging."""
        print("\n" + "="*70)
        print("NOVOGRAD OPTIMIZER - STATUS")
        print("="*70)
        print(f"Phase: {self._phase.value}, iterations: {self._iterations}")
        print(f"Learning rate: {self._learning_rate}, betas: ({self._beta_1}, {self._beta_2}), "
              f"epsilon: {self._epsilon}")
        print(f"Weight decay: {self._weight_decay}, grad averaging: {self._grad_averaging}")
        print("-"*70)

        for handle, (param, state) in enumerate(zip(self._params, self._states)):
            if state is None:
                print(f"  [{handle}] {param.name}: uninitialized")
                continue
            m_norm = float(tf.norm(state.exp_avg))
            v = float(state.exp_avg_sq)
            ema = "unset" if state.grad_ema is None else f"{float(state.grad_ema):.4g}"
            print(f"  [{handle}] {param.name}: step={state.step}, |m|={m_norm:.4f}, v={v:.4g}, grad_ema={ema}")

        print("="*70 + "\n")
