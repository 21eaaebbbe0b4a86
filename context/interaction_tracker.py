# Save as: chat_companion/context/interaction_tracker.py
import re
import time
from collections import OrderedDict, Counter, deque
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Union, Any
import config
from config import FeedbackKind, RoleType
from context.models import (
    Comment, ContextSnapshot, DetectionResult, FeedbackEvent, Interaction,
    parse_feedback_kind, parse_role,
)
from errors import InvalidFeedback

_PUNCTUATION = re.compile(r"[^\w\s]")


@dataclass
class TrackerConfig:
    pickup_detection_window: float = config.PICKUP_DETECTION_WINDOW
    content_similarity_threshold: float = config.CONTENT_SIMILARITY_THRESHOLD
    timing_weight: float = config.TIMING_WEIGHT
    content_weight: float = config.CONTENT_WEIGHT
    max_events: int = config.MAX_INTERACTION_EVENTS
    max_tracked_comments: int = config.MAX_TRACKED_COMMENTS

    def __post_init__(self):
        if self.pickup_detection_window <= 0:
            raise ValueError("pickup_detection_window must be positive")
        if self.max_tracked_comments < 1:
            raise ValueError("max_tracked_comments must be at least 1")
        if abs(self.timing_weight + self.content_weight - 1.0) > 1e-6:
            raise ValueError("timing_weight and content_weight must sum to 1")


def normalize_words(text: str) -> Set[str]:
    stripped = _PUNCTUATION.sub("", (text or "").lower())
    return {word for word in stripped.split() if word}


def jaccard_similarity(a: str, b: str) -> float:
    words_a = normalize_words(a)
    words_b = normalize_words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


class InteractionTracker:
    """
    Watches what the user says after each comment and decides whether the
    comment was "picked up", fusing how soon the speech came with how many
    words it shares with the comment. Explicit feedback (clicks, thumbs)
    is logged as-is.
    """

    def __init__(self, cfg: Optional[TrackerConfig] = None, clock: Callable[[], float] = time.time):
        self.config = cfg or TrackerConfig()
        self.clock = clock
        self.recent: "OrderedDict[str, tuple]" = OrderedDict()
        self.events: deque = deque(maxlen=self.config.max_events)
        self.session_id: Optional[str] = None

    def register(self, comment: Comment, emitted_at: Optional[float] = None):
        self.recent[comment.id] = (comment, emitted_at if emitted_at is not None else self.clock())
        # Oldest first; holds even when no speech ever arrives to trigger _evict
        while len(self.recent) > self.config.max_tracked_comments:
            self.recent.popitem(last=False)

    def _evict(self, reference_time: float):
        cutoff = reference_time - self.config.pickup_detection_window
        stale = [cid for cid, (_, emitted_at) in self.recent.items() if emitted_at < cutoff]
        for cid in stale:
            del self.recent[cid]

    def timing_score(self, delay: float) -> float:
        return max(0.0, 1.0 - delay / self.config.pickup_detection_window)

    def detect_pickup(self, speech_text: str, speech_timestamp: Optional[float] = None) -> List[DetectionResult]:
        if speech_timestamp is None:
            speech_timestamp = self.clock()
        self._evict(speech_timestamp)

        window = self.config.pickup_detection_window
        results: List[DetectionResult] = []
        for comment, emitted_at in list(self.recent.values()):
            delay = speech_timestamp - emitted_at
            if delay < 0 or delay > window:
                continue

            timing = self.timing_score(delay)
            content = jaccard_similarity(comment.content, speech_text)
            confidence = self.config.timing_weight * timing + self.config.content_weight * content
            detected = confidence > self.config.content_similarity_threshold
            recorded = detected and comment.interaction is None
            if recorded:
                self._record_pickup(comment, confidence, speech_timestamp)

            results.append(DetectionResult(
                comment_id=comment.id,
                role=comment.role,
                confidence=confidence,
                timing_score=timing,
                content_score=content,
                detected=detected,
                recorded=recorded,
            ))

        return results

    def _record_pickup(self, comment: Comment, confidence: float, timestamp: float):
        comment.interaction = Interaction(kind=FeedbackKind.PICKUP, confidence=confidence, timestamp=timestamp)
        self.events.append(FeedbackEvent(
            comment_id=comment.id,
            kind=FeedbackKind.PICKUP,
            confidence=confidence,
            timestamp=timestamp,
            role=comment.role,
            session_id=self.session_id,
        ))
        print(f"🎯 [Interaction] Pickup on '{comment.content}' ({comment.role.value}) conf={confidence:.2f}")

    def lookup_role(self, comment_id: str) -> Optional[RoleType]:
        entry = self.recent.get(comment_id)
        return entry[0].role if entry else None

    def track_explicit(
        self,
        comment_id: str,
        kind: Union[FeedbackKind, str],
        context: Optional[ContextSnapshot] = None,
        session_id: Optional[str] = None,
        role: Optional[Union[RoleType, str]] = None,
    ) -> FeedbackEvent:
        if not isinstance(comment_id, str) or not comment_id.strip():
            raise InvalidFeedback("comment_id must be a non-empty string")
        parsed_kind = parse_feedback_kind(kind)
        parsed_role = parse_role(role) if role is not None else self.lookup_role(comment_id)

        event = FeedbackEvent(
            comment_id=comment_id,
            kind=parsed_kind,
            confidence=1.0,
            timestamp=self.clock(),
            role=parsed_role,
            session_id=session_id if session_id is not None else self.session_id,
        )
        self.events.append(event)
        print(f"👍 [Interaction] Explicit {parsed_kind.value} for {comment_id}")
        return event

    def session_interactions(self, session_id: str) -> List[FeedbackEvent]:
        return [e for e in self.events if e.session_id == session_id]

    def get_stats(self) -> Dict[str, Any]:
        total = len(self.events)
        by_kind = Counter(e.kind.value for e in self.events)
        pickups = by_kind.get(FeedbackKind.PICKUP.value, 0)
        return {
            "total_interactions": total,
            "pickup_rate": pickups / total if total else 0.0,
            "explicit_feedback_rate": (total - pickups) / total if total else 0.0,
            "by_kind": dict(by_kind),
            "tracked_comments": len(self.recent),
        }

    def clear_history(self):
        self.events.clear()
        self.recent.clear()
