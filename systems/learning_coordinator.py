# Save as: chat_companion/systems/learning_coordinator.py
from dataclasses import dataclass
from typing import Dict, List, Optional, Union, Any
from config import RoleType, FeedbackKind
from context.models import Comment, ContextSnapshot, DetectionResult, parse_feedback_kind, parse_role
from context.interaction_tracker import InteractionTracker
from context.preference_store import PreferenceStore, Weights
from errors import InvalidFeedback


@dataclass
class CoordinatorConfig:
    enable_auto_pickup_detection: bool = True
    enable_preference_learning: bool = True


class LearningCoordinator:
    """
    The reinforcement loop. Pickups inferred from speech and explicit
    feedback both end up as weight updates in the PreferenceStore, and the
    generation layer reads the resulting weights back through get_weights.
    """

    def __init__(
        self,
        preferences: Optional[PreferenceStore] = None,
        tracker: Optional[InteractionTracker] = None,
        cfg: Optional[CoordinatorConfig] = None,
    ):
        self.preferences = preferences or PreferenceStore()
        self.tracker = tracker or InteractionTracker()
        self.config = cfg or CoordinatorConfig()
        self.user_id: Optional[str] = None
        self.session_id: Optional[str] = None

    async def initialize(self, user_id: str, session_id: Optional[str] = None):
        self.user_id = user_id
        self.session_id = session_id
        self.tracker.session_id = session_id
        if self.config.enable_preference_learning:
            await self.preferences.initialize(user_id)
        print(f"✅ [Learning] Ready for {user_id} (session {session_id})")

    def register_comment(self, comment: Comment, emitted_at: Optional[float] = None):
        if self.config.enable_auto_pickup_detection:
            self.tracker.register(comment, emitted_at)

    async def process_speech(self, text: str, timestamp: Optional[float] = None) -> List[DetectionResult]:
        if not self.config.enable_auto_pickup_detection:
            return []

        results = self.tracker.detect_pickup(text, timestamp)
        if self.config.enable_preference_learning and self.user_id:
            for result in results:
                # Later detections of an already picked-up comment are reported but not re-applied
                if result.recorded:
                    await self.preferences.apply_feedback(
                        self.user_id, result.role, FeedbackKind.PICKUP, min(1.0, result.confidence)
                    )
        return results

    async def record_feedback(
        self,
        comment_id: str,
        kind: Union[FeedbackKind, str],
        context: Optional[ContextSnapshot] = None,
        session_id: Optional[str] = None,
        role: Optional[Union[RoleType, str]] = None,
        user_id: Optional[str] = None,
    ):
        kind = parse_feedback_kind(kind)
        if role is not None:
            role = parse_role(role)
        else:
            role = self.tracker.lookup_role(comment_id)
        if role is None:
            raise InvalidFeedback(f"No role known for comment {comment_id}")

        event = self.tracker.track_explicit(comment_id, kind, context, session_id or self.session_id, role)

        target_user = user_id or self.user_id
        if self.config.enable_preference_learning and target_user:
            await self.preferences.apply_feedback(target_user, role, kind, event.confidence)
        return event

    def get_weights(self, user_id: Optional[str] = None) -> Weights:
        return self.preferences.get_weights(user_id or self.user_id or "")

    async def reset(self, user_id: Optional[str] = None):
        self.tracker.clear_history()
        target_user = user_id or self.user_id
        if target_user:
            await self.preferences.reset(target_user)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "interactions": self.tracker.get_stats(),
            "learning": self.preferences.get_stats(),
        }
