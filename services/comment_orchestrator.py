# Save as: chat_companion/services/comment_orchestrator.py
"""
The Comment Orchestrator - decides when the companion comments and what it says.

Each tick runs the same short pipeline:
  frequency gate -> hybrid generation (seeded with learned weights)
  -> register with the learning loop -> hand the comment to the host.

Scripted openers queued by start() bypass the gate via force_next().
"""

import time
from collections import OrderedDict, deque
from typing import Callable, Dict, List, Optional, Union, Any
import config
from config import FeedbackKind, RoleType
from context.models import AudioAnalysisTick, Comment, ContextSnapshot, DetectionResult
from systems.frequency_controller import FrequencyController
from systems.hybrid_generator import HybridGenerator
from systems.learning_coordinator import LearningCoordinator
from systems.conversation_starters import ConversationStarters
from errors import InvalidFeedback


class CommentOrchestrator:
    def __init__(
        self,
        frequency: Optional[FrequencyController] = None,
        generator: Optional[HybridGenerator] = None,
        learning: Optional[LearningCoordinator] = None,
        starters: Optional[ConversationStarters] = None,
        user_id: str = config.DEFAULT_USER_ID,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.clock = clock
        self.frequency = frequency or FrequencyController(clock=clock)
        self.generator = generator or HybridGenerator()
        self.learning = learning or LearningCoordinator()
        self.starters = starters or ConversationStarters(clock=clock)
        self.user_id = user_id
        self.session_id = session_id or f"session_{int(self.clock())}"
        self.pending_openers: deque = deque()
        self.comment_index: "OrderedDict[str, Comment]" = OrderedDict()
        self.follow_up_sent = False
        self.started = False

    async def start(self, topic: Optional[str] = None, openers: int = 2):
        await self.learning.initialize(self.user_id, self.session_id)
        self.starters.reset()
        self.pending_openers.extend(self.starters.opening_sequence(topic, openers))
        if self.pending_openers:
            self.frequency.force_next()
        self.started = True
        print(f"✅ [Orchestrator] Session {self.session_id} started for {self.user_id}")

    def update_audio(self, tick: AudioAnalysisTick) -> bool:
        return self.frequency.update(tick)

    def _remember(self, comment: Comment):
        self.comment_index[comment.id] = comment
        while len(self.comment_index) > config.COMMENT_INDEX_LIMIT:
            self.comment_index.popitem(last=False)

    def _emit(self, comment: Comment) -> Comment:
        emitted_at = self.clock()
        self.frequency.record_emission()
        self.learning.register_comment(comment, emitted_at)
        self._remember(comment)
        print(f"💬 [Orchestrator] ({comment.role.value}/{comment.origin.value}) {comment.content}")
        return comment

    def _next_scripted(self, context: ContextSnapshot) -> Optional[Comment]:
        if self.pending_openers:
            return self.pending_openers.popleft()

        if context.silence_duration_seconds < config.FOLLOW_UP_SILENCE_SECONDS:
            self.follow_up_sent = False
            return None
        if self.follow_up_sent:
            return None
        follow_up = self.starters.follow_up(context.silence_duration_seconds)
        if follow_up:
            self.follow_up_sent = True
        return follow_up

    async def tick(self, context: ContextSnapshot) -> Optional[Comment]:
        """
        Returns the comment to display, or None when the frequency gate is closed.
        Raises GenerationFailed only if the hybrid generator has fallback disabled.
        """
        if not self.frequency.should_emit():
            return None

        scripted = self._next_scripted(context)
        if scripted:
            self._emit(scripted)
            # record_emission clears the force flag, re-arm it for the next opener
            if self.pending_openers:
                self.frequency.force_next()
            return scripted

        weights = self.learning.get_weights(self.user_id)
        comment = await self.generator.generate(context, weights)
        return self._emit(comment)

    async def on_speech(self, text: str, timestamp: Optional[float] = None) -> List[DetectionResult]:
        return await self.learning.process_speech(text, timestamp)

    def lookup_role(self, comment_id: str) -> Optional[RoleType]:
        comment = self.comment_index.get(comment_id)
        return comment.role if comment else None

    async def record_feedback(
        self,
        comment_id: str,
        kind: Union[FeedbackKind, str],
        context: Optional[ContextSnapshot] = None,
        session_id: Optional[str] = None,
    ):
        role = self.lookup_role(comment_id)
        if role is None:
            raise InvalidFeedback(f"Unknown comment: {comment_id}")
        comment = self.comment_index[comment_id]
        return await self.learning.record_feedback(
            comment_id,
            kind,
            context or comment.source_context,
            session_id or self.session_id,
            role=role,
            user_id=self.user_id,
        )

    def get_weights(self, user_id: Optional[str] = None) -> Dict[RoleType, float]:
        return self.learning.get_weights(user_id or self.user_id)

    async def reset(self, user_id: Optional[str] = None):
        await self.learning.reset(user_id or self.user_id)

    def get_status(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "started": self.started,
            "pending_openers": len(self.pending_openers),
            "frequency": self.frequency.get_stats(),
            "generator": {
                "config": self.generator.get_config(),
                "metrics": self.generator.get_metrics(),
                "rule_based": self.generator.rule_generator.get_stats(),
            },
            "learning": self.learning.get_stats(),
            "weights": {role.value: round(w, 4) for role, w in self.get_weights().items()},
        }
