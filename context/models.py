# Save as: chat_companion/context/models.py
import time
import uuid
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional, Union
from config import RoleType, FeedbackKind, CommentOrigin, ROLE_ORDER, DEFAULT_ROLE_WEIGHT
from errors import InvalidFeedback


@dataclass(frozen=True)
class ContextSnapshot:
    recent_transcript: str = ""
    current_topic: Optional[str] = None
    engagement_level: float = 0.5
    speech_volume: float = 0.0
    speech_rate: float = 1.0
    silence_duration_seconds: float = 0.0

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class AudioAnalysisTick:
    volume: float = 0.0
    speech_rate: float = 1.0
    is_speaking: bool = False
    silence_duration_ms: float = 0.0
    average_volume: float = 0.0
    volume_variance: float = 0.0
    duration_ms: float = 100.0


@dataclass
class Interaction:
    kind: FeedbackKind
    confidence: float
    timestamp: float


@dataclass
class Comment:
    role: RoleType
    content: str
    source_context: ContextSnapshot
    origin: CommentOrigin = CommentOrigin.RULE
    created_at: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: f"comment_{uuid.uuid4().hex[:12]}")
    # Set later by the InteractionTracker; everything else is fixed at creation
    interaction: Optional[Interaction] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "origin": self.origin.value,
            "created_at": self.created_at,
            "source_context": self.source_context.to_dict(),
            "interaction": None,
        }
        if self.interaction:
            data["interaction"] = {
                "kind": self.interaction.kind.value,
                "confidence": self.interaction.confidence,
                "timestamp": self.interaction.timestamp,
            }
        return data


@dataclass
class FeedbackEvent:
    comment_id: str
    kind: FeedbackKind
    confidence: float
    timestamp: float
    role: Optional[RoleType] = None
    session_id: Optional[str] = None


@dataclass
class DetectionResult:
    comment_id: str
    role: RoleType
    confidence: float
    timing_score: float
    content_score: float
    detected: bool
    # True only on the detection that logged the comment's pickup
    recorded: bool = False

    def to_dict(self):
        return {
            "comment_id": self.comment_id,
            "role": self.role.value,
            "confidence": round(self.confidence, 4),
            "timing_score": round(self.timing_score, 4),
            "content_score": round(self.content_score, 4),
            "detected": self.detected,
            "recorded": self.recorded,
        }


def default_role_weights() -> Dict[RoleType, float]:
    return {role: DEFAULT_ROLE_WEIGHT for role in ROLE_ORDER}


@dataclass
class UserPreferences:
    user_id: str
    role_weights: Dict[RoleType, float] = field(default_factory=default_role_weights)
    session_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Shape handed to the durable store."""
        return {
            "user_id": self.user_id,
            "role_weights": {role.value: weight for role, weight in self.role_weights.items()},
            "session_count": self.session_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], min_weight: float, max_weight: float) -> "UserPreferences":
        """
        Rebuilds preferences from a stored record. Unknown role keys are
        dropped, missing roles get the default weight and every weight is
        clamped back into bounds so a hand-edited record can't break the
        weight invariant.
        """
        weights = default_role_weights()
        for key, value in (data.get("role_weights") or {}).items():
            try:
                role = RoleType(key)
                weight = float(value)
            except (ValueError, TypeError):
                continue
            weights[role] = max(min_weight, min(max_weight, weight))
        return cls(
            user_id=data.get("user_id", ""),
            role_weights=weights,
            session_count=int(data.get("session_count", 0) or 0),
        )


def parse_role(value: Union[RoleType, str]) -> RoleType:
    if isinstance(value, RoleType):
        return value
    try:
        return RoleType(value)
    except ValueError:
        raise InvalidFeedback(f"Unknown role: {value!r}")


def parse_feedback_kind(value: Union[FeedbackKind, str]) -> FeedbackKind:
    if isinstance(value, FeedbackKind):
        return value
    try:
        return FeedbackKind(value)
    except ValueError:
        raise InvalidFeedback(f"Unknown feedback kind: {value!r}")
