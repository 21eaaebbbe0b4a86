# Save as: chat_companion/systems/frequency_controller.py
import random
import time
from collections import deque
from dataclasses import dataclass, asdict
from typing import Callable, Optional, Dict, Any
import config
from context.models import AudioAnalysisTick
from systems.smoothing import BoundedSmoother, clamp


@dataclass
class FrequencyConfig:
    base_frequency: float = config.BASE_FREQUENCY
    volume_multiplier: float = config.VOLUME_MULTIPLIER
    speech_rate_multiplier: float = config.SPEECH_RATE_MULTIPLIER
    variance_bonus: float = config.VARIANCE_BONUS
    silence_reduction: float = config.SILENCE_REDUCTION
    silence_threshold_ms: float = config.SILENCE_THRESHOLD_MS
    min_frequency: float = config.MIN_FREQUENCY
    max_frequency: float = config.MAX_FREQUENCY
    adaptation_smoothness: float = config.ADAPTATION_SMOOTHNESS
    baseline_activity: float = config.BASELINE_ACTIVITY
    max_step_fraction: float = config.MAX_STEP_FRACTION
    timing_jitter: float = config.TIMING_JITTER

    def __post_init__(self):
        if self.base_frequency <= 0:
            raise ValueError("base_frequency must be positive")
        if not 0 < self.min_frequency <= self.max_frequency:
            raise ValueError("need 0 < min_frequency <= max_frequency")
        if not 0.0 <= self.adaptation_smoothness < 1.0:
            raise ValueError("adaptation_smoothness must be in [0, 1)")
        if not 0.0 <= self.silence_reduction <= 1.0:
            raise ValueError("silence_reduction must be in [0, 1]")
        if not 0.0 <= self.timing_jitter < 1.0:
            raise ValueError("timing_jitter must be in [0, 1)")

    @property
    def floor(self) -> float:
        """Lowest rate the controller may settle at, even in long silence."""
        activity_floor = self.base_frequency * self.baseline_activity
        return min(self.max_frequency, max(self.min_frequency, activity_floor))


@dataclass
class FrequencyState:
    current_rate_per_minute: float
    target_rate_per_minute: float
    is_in_silence: bool = False
    silence_duration_ms: float = 0.0
    last_emission_at: Optional[float] = None


class FrequencyController:
    """
    Turns the stream of audio-analysis ticks into a go/no-go emission gate.
    The rate chases a target derived from volume, speech rate and silence
    through a bounded EMA, so loud bursts speed things up gradually and
    long silences slow them down without ever going quiet entirely.
    """

    def __init__(
        self,
        cfg: Optional[FrequencyConfig] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.config = cfg or FrequencyConfig()
        self.clock = clock
        self.rng = rng or random.Random()
        self._rate = self._build_smoother()
        self.state = FrequencyState(
            current_rate_per_minute=self._rate.value,
            target_rate_per_minute=self._rate.value,
        )
        self.history = deque(maxlen=config.FREQUENCY_HISTORY_SIZE)
        self.emission_count = 0
        self._forced = False

    def _build_smoother(self) -> BoundedSmoother:
        cfg = self.config
        return BoundedSmoother(
            initial=cfg.base_frequency,
            alpha=1.0 - cfg.adaptation_smoothness,
            lower=cfg.floor,
            upper=cfg.max_frequency,
            max_step_fraction=cfg.max_step_fraction,
        )

    def compute_target(self, tick: AudioAnalysisTick) -> float:
        cfg = self.config
        base = cfg.base_frequency

        # Louder and faster speech both push the target up, capped at 2x influence
        volume_factor = min(2.0, max(0.0, tick.volume) / 0.5)
        rate_factor = min(2.0, max(0.0, tick.speech_rate))
        variance_factor = min(1.5, max(0.0, tick.volume_variance) / config.VARIANCE_NORMALIZER)

        target = base
        target += (volume_factor - 1.0) * cfg.volume_multiplier * base
        target += (rate_factor - 1.0) * cfg.speech_rate_multiplier * base
        target += variance_factor * cfg.variance_bonus * base

        if not tick.is_speaking and tick.silence_duration_ms > cfg.silence_threshold_ms:
            over = tick.silence_duration_ms - cfg.silence_threshold_ms
            reduction = min(cfg.silence_reduction, cfg.silence_reduction * over / config.SILENCE_RAMP_MS)
            target *= (1.0 - reduction)

        return clamp(target, cfg.floor, cfg.max_frequency)

    def update(self, tick: AudioAnalysisTick) -> bool:
        """Folds one analysis tick into the rate. Returns False if the tick was ignored."""
        if tick.duration_ms <= 0:
            return False

        target = self.compute_target(tick)
        self.state.target_rate_per_minute = target
        self.state.is_in_silence = not tick.is_speaking
        self.state.silence_duration_ms = max(0.0, tick.silence_duration_ms)
        self.state.current_rate_per_minute = self._rate.update(target)
        self.history.append(self.state.current_rate_per_minute)
        return True

    @property
    def current_rate(self) -> float:
        return self.state.current_rate_per_minute

    def _interval_seconds(self) -> float:
        interval = 60.0 / self.state.current_rate_per_minute
        jitter = self.config.timing_jitter
        if jitter > 0:
            interval *= self.rng.uniform(1.0 - jitter, 1.0 + jitter)
        return interval

    def should_emit(self) -> bool:
        if self._forced or self.state.last_emission_at is None:
            return True
        elapsed = self.clock() - self.state.last_emission_at
        return elapsed >= self._interval_seconds()

    def record_emission(self):
        self.state.last_emission_at = self.clock()
        self.emission_count += 1
        self._forced = False

    def force_next(self):
        self._forced = True
        print("🎯 [Frequency] Next emission forced")

    def time_until_next(self) -> float:
        if self._forced or self.state.last_emission_at is None:
            return 0.0
        elapsed = self.clock() - self.state.last_emission_at
        return max(0.0, 60.0 / self.state.current_rate_per_minute - elapsed)

    def engagement_label(self) -> str:
        base = self.config.base_frequency
        avg = sum(self.history) / len(self.history) if self.history else base
        if avg > base * 1.3:
            return "high"
        if avg < base * 0.7:
            return "low"
        return "medium"

    def pace_label(self) -> str:
        if len(self.history) < 5:
            return "normal"
        recent = list(self.history)[-5:]
        trend = recent[-1] - recent[0]
        threshold = self.config.base_frequency * 0.3
        if trend > threshold:
            return "fast"
        if trend < -threshold:
            return "slow"
        return "normal"

    def get_state(self) -> FrequencyState:
        return FrequencyState(**asdict(self.state))

    def get_stats(self) -> Dict[str, Any]:
        avg = sum(self.history) / len(self.history) if self.history else self.config.base_frequency
        return {
            "current_rate": round(self.state.current_rate_per_minute, 2),
            "target_rate": round(self.state.target_rate_per_minute, 2),
            "average_rate": round(avg, 2),
            "emissions": self.emission_count,
            "time_until_next": round(self.time_until_next(), 2),
            "is_in_silence": self.state.is_in_silence,
            "engagement": self.engagement_label(),
            "pace": self.pace_label(),
        }

    def reset(self):
        self._rate = self._build_smoother()
        self.state = FrequencyState(
            current_rate_per_minute=self._rate.value,
            target_rate_per_minute=self._rate.value,
        )
        self.history.clear()
        self.emission_count = 0
        self._forced = False
