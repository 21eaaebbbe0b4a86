# Save as: chat_companion/systems/smoothing.py
import math
from typing import Optional


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


class BoundedSmoother:
    """
    Exponential moving average with hard bounds and an optional per-update
    step limit. Shared by the frequency control loop and the hybrid
    generator's performance metrics.

    `alpha` is the weight given to each new sample:
        value' = (1 - alpha) * value + alpha * sample
    """

    def __init__(
        self,
        initial: float,
        alpha: float,
        lower: float = -math.inf,
        upper: float = math.inf,
        max_step_fraction: Optional[float] = None,
    ):
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if lower > upper:
            raise ValueError(f"lower bound {lower} exceeds upper bound {upper}")
        self.alpha = alpha
        self.lower = lower
        self.upper = upper
        self.max_step_fraction = max_step_fraction
        self.initial = clamp(initial, lower, upper)
        self.value = self.initial

    def update(self, sample: float) -> float:
        blended = (1.0 - self.alpha) * self.value + self.alpha * sample
        step = blended - self.value

        if self.max_step_fraction is not None:
            # A zero value would freeze the smoother, so the limit never drops below alpha
            limit = max(abs(self.value) * self.max_step_fraction, self.alpha)
            step = clamp(step, -limit, limit)

        self.value = clamp(self.value + step, self.lower, self.upper)
        return self.value

    def reset(self, value: Optional[float] = None):
        self.value = clamp(self.initial if value is None else value, self.lower, self.upper)
