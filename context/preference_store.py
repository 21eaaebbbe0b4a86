# Save as: chat_companion/context/preference_store.py
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union, Any
import config
from config import RoleType, FeedbackKind, ROLE_ORDER
from context.models import UserPreferences, default_role_weights, parse_role, parse_feedback_kind
from context.storage import DurableKeyValueStore, InMemoryKeyValueStore
from errors import InvalidFeedback

Weights = Dict[RoleType, float]


def _bound(value: float, min_weight: float, max_weight: float) -> float:
    return max(min_weight, min(max_weight, value))


def apply_delta(weights: Mapping[RoleType, float], role: RoleType, delta: float,
                min_weight: float = config.MIN_WEIGHT, max_weight: float = config.MAX_WEIGHT) -> Weights:
    """Returns a new map with `delta` added to `role`, clamped to bounds."""
    updated = dict(weights)
    current = updated.get(role, config.DEFAULT_ROLE_WEIGHT)
    updated[role] = _bound(current + delta, min_weight, max_weight)
    return updated


def decay_others(weights: Mapping[RoleType, float], excluding: RoleType, decay_rate: float = config.DECAY_RATE,
                 min_weight: float = config.MIN_WEIGHT, max_weight: float = config.MAX_WEIGHT) -> Weights:
    """Returns a new map where every role except `excluding` is scaled by (1 - decay_rate), clamped."""
    updated = {}
    for role, weight in weights.items():
        if role == excluding:
            updated[role] = weight
        else:
            updated[role] = _bound(weight * (1.0 - decay_rate), min_weight, max_weight)
    return updated


@dataclass
class LearningConfig:
    learning_rate: float = config.LEARNING_RATE
    decay_rate: float = config.DECAY_RATE
    min_weight: float = config.MIN_WEIGHT
    max_weight: float = config.MAX_WEIGHT
    feedback_multipliers: Dict[FeedbackKind, float] = field(
        default_factory=lambda: dict(config.FEEDBACK_MULTIPLIERS)
    )

    def __post_init__(self):
        if not 0 < self.min_weight <= config.DEFAULT_ROLE_WEIGHT <= self.max_weight:
            raise ValueError("weight bounds must bracket the neutral weight")
        if not 0.0 <= self.decay_rate <= 1.0:
            raise ValueError("decay_rate must be in [0, 1]")
        missing = [k for k in FeedbackKind if k not in self.feedback_multipliers]
        if missing:
            raise ValueError(f"feedback_multipliers missing {missing}")


@dataclass
class LearningStats:
    total_feedback_events: int = 0
    role_adjustments: Dict[RoleType, float] = field(default_factory=dict)
    average_weight: float = config.DEFAULT_ROLE_WEIGHT
    most_preferred_role: RoleType = RoleType.REACTION
    least_preferred_role: RoleType = RoleType.REACTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_feedback_events": self.total_feedback_events,
            "role_adjustments": {r.value: round(v, 4) for r, v in self.role_adjustments.items()},
            "average_weight": round(self.average_weight, 4),
            "most_preferred_role": self.most_preferred_role.value,
            "least_preferred_role": self.least_preferred_role.value,
        }


class PreferenceStore:
    """
    Per-user role weights. The durable store is the source of truth; the
    in-memory map is a cache for this instance. Storage failures degrade
    to in-memory defaults instead of breaking generation.
    """

    def __init__(self, store: Optional[DurableKeyValueStore] = None, cfg: Optional[LearningConfig] = None):
        self.store = store if store is not None else InMemoryKeyValueStore()
        self.config = cfg or LearningConfig()
        self.preferences: Dict[str, UserPreferences] = {}
        self.degraded_users = set()
        self.stats = LearningStats()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        if user_id not in self._locks:
            self._locks[user_id] = asyncio.Lock()
        return self._locks[user_id]

    async def _load(self, user_id: str) -> Optional[UserPreferences]:
        try:
            record = await self.store.get(user_id)
        except Exception as e:
            print(f"⚠️ [Preferences] Storage unavailable for {user_id}, using defaults: {e}")
            self.degraded_users.add(user_id)
            return None
        if record is None:
            return None
        prefs = UserPreferences.from_dict(record, self.config.min_weight, self.config.max_weight)
        prefs.user_id = user_id
        return prefs

    async def _persist(self, prefs: UserPreferences) -> bool:
        try:
            await self.store.put(prefs.user_id, prefs.to_dict())
        except Exception as e:
            print(f"⚠️ [Preferences] Could not persist {prefs.user_id}, keeping in memory: {e}")
            self.degraded_users.add(prefs.user_id)
            return False
        self.degraded_users.discard(prefs.user_id)
        return True

    async def initialize(self, user_id: str) -> UserPreferences:
        async with self._lock_for(user_id):
            if user_id in self.preferences:
                return self.preferences[user_id]

            prefs = await self._load(user_id)
            if prefs is None:
                print(f"[Preferences] Creating default preferences for: {user_id}")
                prefs = UserPreferences(user_id=user_id)
            prefs.session_count += 1
            self.preferences[user_id] = prefs
            await self._persist(prefs)
            return prefs

    def get_weights(self, user_id: str) -> Weights:
        prefs = self.preferences.get(user_id)
        if prefs is None:
            return default_role_weights()
        return dict(prefs.role_weights)

    def compute_delta(self, kind: FeedbackKind, confidence: float) -> float:
        return self.config.feedback_multipliers[kind] * confidence * self.config.learning_rate

    async def apply_feedback(
        self,
        user_id: str,
        role: Union[RoleType, str],
        kind: Union[FeedbackKind, str],
        confidence: float = 1.0,
    ) -> float:
        """Applies one feedback event and returns the role's new weight."""
        role = parse_role(role)
        kind = parse_feedback_kind(kind)
        if not isinstance(confidence, (int, float)) or not 0.0 <= confidence <= 1.0:
            raise InvalidFeedback(f"confidence must be within [0, 1], got {confidence!r}")

        if user_id not in self.preferences:
            await self.initialize(user_id)

        async with self._lock_for(user_id):
            prefs = self.preferences[user_id]
            cfg = self.config
            old_weight = prefs.role_weights.get(role, config.DEFAULT_ROLE_WEIGHT)
            delta = self.compute_delta(kind, confidence)

            weights = apply_delta(prefs.role_weights, role, delta, cfg.min_weight, cfg.max_weight)
            weights = decay_others(weights, role, cfg.decay_rate, cfg.min_weight, cfg.max_weight)
            prefs.role_weights = weights

            self._update_stats(role, delta, weights)
            await self._persist(prefs)

        new_weight = weights[role]
        print(f"📈 [Preferences] {user_id}/{role.value}: {old_weight:.2f} -> {new_weight:.2f} ({kind.value}, {delta:+.3f})")
        return new_weight

    def _update_stats(self, role: RoleType, delta: float, weights: Mapping[RoleType, float]):
        stats = self.stats
        stats.total_feedback_events += 1
        stats.role_adjustments[role] = stats.role_adjustments.get(role, 0.0) + abs(delta)
        stats.average_weight = sum(weights.values()) / len(weights)

        ordered = [r for r in ROLE_ORDER if r in weights]
        stats.most_preferred_role = max(ordered, key=lambda r: weights[r])
        stats.least_preferred_role = min(ordered, key=lambda r: weights[r])

    async def reset(self, user_id: str) -> UserPreferences:
        async with self._lock_for(user_id):
            existing = self.preferences.get(user_id)
            prefs = UserPreferences(
                user_id=user_id,
                session_count=existing.session_count if existing else 0,
            )
            self.preferences[user_id] = prefs
            self.stats = LearningStats()
            await self._persist(prefs)
        print(f"🔄 [Preferences] Reset weights for {user_id}")
        return prefs

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
