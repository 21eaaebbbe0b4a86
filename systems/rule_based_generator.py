# Save as: chat_companion/systems/rule_based_generator.py
import random
import time
from collections import deque, Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Mapping, Any
import config
from config import RoleType, CommentOrigin
from context.models import ContextSnapshot, Comment
from systems.role_catalog import RoleCatalog, Role


class RuleBasedGenerator:
    """
    Cheap deterministic comment producer.

    Roles whose triggers match the context are ranked by weight (catalog
    order breaks ties) and the winner contributes one utterance, avoiding
    whatever was said in the last few comments.
    """

    def __init__(
        self,
        catalog: Optional[RoleCatalog] = None,
        recent_window: int = config.RECENT_UTTERANCE_WINDOW,
        min_interval_seconds: float = config.RULE_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog or RoleCatalog()
        self.recent_window = max(0, recent_window)
        self.min_interval_seconds = min_interval_seconds
        self.clock = clock
        self.rng = rng or random.Random()
        self.history: deque = deque(maxlen=config.RULE_HISTORY_LIMIT)
        self.last_generated_at: Optional[float] = None

    def _weight_for(self, role: Role, weights: Optional[Mapping[RoleType, float]]) -> float:
        if weights and role.type in weights:
            return weights[role.type]
        return role.weight

    def rank_roles(
        self,
        context: ContextSnapshot,
        weights: Optional[Mapping[RoleType, float]] = None,
        hour: Optional[int] = None,
    ) -> List[Role]:
        """Eligible roles, best first."""
        if hour is None:
            hour = datetime.fromtimestamp(self.clock()).hour
        eligible = [
            (self._weight_for(role, weights), index, role)
            for index, role in enumerate(self.catalog)
            if role.is_eligible(context, hour)
        ]
        # Highest weight first, earlier catalog position wins a tie
        eligible.sort(key=lambda item: (-item[0], item[1]))
        return [role for _, _, role in eligible]

    def _pick_utterance(self, role: Role, hour: int) -> str:
        pool = role.utterances_for_hour(hour)
        recent = [c.content for c in list(self.history)[-self.recent_window:]] if self.recent_window else []

        fresh = [u for u in pool if u not in recent]
        if fresh:
            return self.rng.choice(fresh)

        # Everything was said recently: lift the exclusion, oldest use first
        last_seen = {}
        for position, content in enumerate(recent):
            last_seen[content] = position
        return min(pool, key=lambda u: last_seen.get(u, -1))

    def generate(
        self,
        context: ContextSnapshot,
        weights: Optional[Mapping[RoleType, float]] = None,
    ) -> Optional[Comment]:
        now = self.clock()
        if self.min_interval_seconds > 0 and self.last_generated_at is not None:
            if now - self.last_generated_at < self.min_interval_seconds:
                return None

        hour = datetime.fromtimestamp(now).hour
        ranked = self.rank_roles(context, weights, hour=hour)
        if not ranked:
            return None

        role = ranked[0]
        comment = Comment(
            role=role.type,
            content=self._pick_utterance(role, hour),
            source_context=context,
            origin=CommentOrigin.RULE,
            created_at=now,
        )
        self.history.append(comment)
        self.last_generated_at = now
        return comment

    def make_filler(self, context: ContextSnapshot) -> Comment:
        return Comment(
            role=config.FILLER_ROLE,
            content=config.FILLER_CONTENT,
            source_context=context,
            origin=CommentOrigin.FILLER,
            created_at=self.clock(),
        )

    def get_stats(self) -> Dict[str, Any]:
        comments = list(self.history)
        distribution = Counter(c.role.value for c in comments)
        intervals = [b.created_at - a.created_at for a, b in zip(comments, comments[1:])]
        return {
            "total_comments": len(comments),
            "role_distribution": dict(distribution),
            "average_interval": sum(intervals) / len(intervals) if intervals else 0.0,
        }

    def reset(self):
        self.history.clear()
        self.last_generated_at = None
