# Save as: chat_companion/systems/hybrid_generator.py
import asyncio
import random
import time
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Mapping, Optional, Any
import config
from config import RoleType, CommentOrigin
from context.models import ContextSnapshot, Comment
from systems.role_catalog import Role
from systems.rule_based_generator import RuleBasedGenerator
from systems.smoothing import BoundedSmoother, clamp
from errors import ExternalCapabilityFailure, GenerationFailed, GenerationUnavailable


@dataclass
class HybridConfig:
    rule_based_ratio: float = config.RULE_BASED_RATIO
    enable_adaptive_ratio: bool = config.ENABLE_ADAPTIVE_RATIO
    performance_threshold_ms: float = config.PERFORMANCE_THRESHOLD_MS
    fallback_to_rule_based: bool = config.FALLBACK_TO_RULE_BASED
    max_retries: int = config.MAX_LLM_RETRIES
    attempt_timeout_seconds: float = config.LLM_ATTEMPT_TIMEOUT_SECONDS

    def __post_init__(self):
        if not 0.0 <= self.rule_based_ratio <= 1.0:
            raise ValueError("rule_based_ratio must be in [0, 1]")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.attempt_timeout_seconds <= 0:
            raise ValueError("attempt_timeout_seconds must be positive")

    @property
    def llm_ratio(self) -> float:
        return 1.0 - self.rule_based_ratio


@dataclass
class PerformanceMetrics:
    success_rate: float
    avg_latency_ms: float
    llm_failure_count: int = 0
    rule_based_count: int = 0
    llm_count: int = 0
    filler_count: int = 0
    total_requests: int = 0


class HybridGenerator:
    """
    Picks between the rule-based generator and the external generative
    capability on every request. Poor latency or reliability from the
    capability shifts the mix toward rules; sustained good performance
    shifts it back, never below RATIO_FLOOR.
    """

    def __init__(
        self,
        rule_generator: Optional[RuleBasedGenerator] = None,
        capability=None,
        cfg: Optional[HybridConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rule_generator = rule_generator or RuleBasedGenerator()
        self.capability = capability
        self.config = cfg or HybridConfig()
        self.rng = rng or random.Random()
        self.clock = clock
        self._success = BoundedSmoother(config.INITIAL_SUCCESS_RATE, config.METRICS_ALPHA, lower=0.0, upper=1.0)
        self._latency = BoundedSmoother(config.INITIAL_AVG_LATENCY_MS, config.METRICS_ALPHA, lower=0.0)
        self.metrics = PerformanceMetrics(
            success_rate=self._success.value,
            avg_latency_ms=self._latency.value,
        )

    # --- Ratio Management ---
    @property
    def rule_based_ratio(self) -> float:
        return self.config.rule_based_ratio

    @property
    def llm_ratio(self) -> float:
        return self.config.llm_ratio

    def set_mixing_ratio(self, rule_based: float, llm: float):
        if rule_based < 0 or llm < 0:
            raise ValueError("mixing ratios must be non-negative")
        total = rule_based + llm
        if total <= 0:
            return
        self.config.rule_based_ratio = rule_based / total
        print(f"⚖️ [Hybrid] Mixing ratio set: rules {self.rule_based_ratio:.2f} / llm {self.llm_ratio:.2f}")

    def adjust_ratio(self):
        success = self.metrics.success_rate
        latency = self.metrics.avg_latency_ms
        threshold = self.config.performance_threshold_ms
        ratio = self.config.rule_based_ratio

        if success < 0.8 or latency > threshold:
            if ratio < config.RATIO_CEILING:
                self.config.rule_based_ratio = clamp(ratio + config.RATIO_INCREASE_STEP, 0.0, config.RATIO_CEILING)
                print(f"⚖️ [Hybrid] LLM struggling (success {success:.2f}, {latency:.0f}ms) -> rules {self.rule_based_ratio:.2f}")
        elif success > 0.95 and latency < threshold / 2:
            if ratio > config.RATIO_FLOOR:
                self.config.rule_based_ratio = clamp(ratio - config.RATIO_DECREASE_STEP, config.RATIO_FLOOR, 1.0)
                print(f"⚖️ [Hybrid] LLM healthy (success {success:.2f}, {latency:.0f}ms) -> rules {self.rule_based_ratio:.2f}")

    def should_use_rule_based(self) -> bool:
        if self.config.enable_adaptive_ratio:
            self.adjust_ratio()
        return self.rng.random() < self.config.rule_based_ratio

    # --- Metrics ---
    def _record_outcome(self, success: bool, latency_ms: Optional[float] = None):
        self.metrics.success_rate = self._success.update(1.0 if success else 0.0)
        if success and latency_ms is not None:
            self.metrics.avg_latency_ms = self._latency.update(latency_ms)
        if not success:
            self.metrics.llm_failure_count += 1

    def is_llm_available(self) -> bool:
        if self.capability is None:
            return False
        is_ready = getattr(self.capability, "is_ready", None)
        return bool(is_ready()) if callable(is_ready) else True

    # --- Generation ---
    def _rule_based(self, context: ContextSnapshot, weights: Optional[Mapping[RoleType, float]]) -> Comment:
        comment = self.rule_generator.generate(context, weights)
        if comment is None:
            raise GenerationUnavailable("no role matched the context")
        self.metrics.rule_based_count += 1
        return comment

    def select_llm_role(self, context: ContextSnapshot, weights: Optional[Mapping[RoleType, float]]) -> Role:
        catalog = self.rule_generator.catalog
        if context.silence_duration_seconds > config.LLM_QUESTION_SILENCE_SECONDS:
            question = catalog.get(RoleType.QUESTION)
            if question:
                return question
        ranked = self.rule_generator.rank_roles(context, weights)
        if ranked:
            return ranked[0]
        return catalog.get(config.FILLER_ROLE) or next(iter(catalog))

    async def _llm(self, context: ContextSnapshot, weights: Optional[Mapping[RoleType, float]]) -> Comment:
        role = self.select_llm_role(context, weights)
        attempts = self.config.max_retries + 1
        started = self.clock()
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                content = await asyncio.wait_for(
                    self.capability.generate(context, role),
                    timeout=self.config.attempt_timeout_seconds,
                )
                if not content or not content.strip():
                    raise ExternalCapabilityFailure("empty response")
            except asyncio.TimeoutError as e:
                last_error = e
                print(f"⏱️ [Hybrid] LLM attempt {attempt}/{attempts} timed out")
                continue
            except Exception as e:
                last_error = e
                print(f"⚠️ [Hybrid] LLM attempt {attempt}/{attempts} failed: {e}")
                continue

            latency_ms = (self.clock() - started) * 1000.0
            self._record_outcome(True, latency_ms)
            self.metrics.llm_count += 1
            return Comment(
                role=role.type,
                content=content.strip(),
                source_context=context,
                origin=CommentOrigin.LLM,
            )

        self._record_outcome(False)
        if not self.config.fallback_to_rule_based:
            raise GenerationFailed(f"LLM generation failed after {attempts} attempts: {last_error}", attempts=attempts)

        print("🔁 [Hybrid] Falling back to rule-based generation")
        return self._rule_based(context, weights)

    async def generate(
        self,
        context: ContextSnapshot,
        weights: Optional[Mapping[RoleType, float]] = None,
    ) -> Comment:
        """
        Always returns a comment unless fallback is disabled and the
        generative path fails, in which case GenerationFailed is raised.
        A cancelled call leaves the metrics untouched.
        """
        self.metrics.total_requests += 1
        use_rules = self.should_use_rule_based()

        try:
            if use_rules or not self.is_llm_available():
                return self._rule_based(context, weights)
            return await self._llm(context, weights)
        except GenerationUnavailable as e:
            self.metrics.filler_count += 1
            print(f"💤 [Hybrid] {e}, sending filler")
            return self.rule_generator.make_filler(context)

    def get_metrics(self) -> Dict[str, Any]:
        return asdict(self.metrics)

    def get_config(self) -> Dict[str, Any]:
        data = asdict(self.config)
        data["llm_ratio"] = self.llm_ratio
        return data

    def reset(self):
        self.rule_generator.reset()
        self._success.reset()
        self._latency.reset()
        self.metrics = PerformanceMetrics(
            success_rate=self._success.value,
            avg_latency_ms=self._latency.value,
        )
