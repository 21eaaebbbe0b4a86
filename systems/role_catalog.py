# Save as: chat_companion/systems/role_catalog.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union, Any
from config import RoleType, TriggerKind, ROLE_ORDER, DEFAULT_ROLE_WEIGHT
from context.models import ContextSnapshot

HourWindow = Tuple[int, int]


def hour_in_window(hour: int, window: HourWindow) -> bool:
    """Half-open [start, end) window on a 24h clock; wraps past midnight when start > end."""
    start, end = window
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


@dataclass(frozen=True)
class Trigger:
    kind: TriggerKind
    operator: str  # 'contains', 'equals', 'greater', 'less', 'between'
    value: Any
    required: bool = False

    def _context_value(self, context: ContextSnapshot, hour: int) -> Union[str, float, int, None]:
        if self.kind == TriggerKind.KEYWORD:
            return (context.recent_transcript or "").lower()
        if self.kind == TriggerKind.TOPIC:
            return context.current_topic or ""
        if self.kind == TriggerKind.VOLUME:
            return context.speech_volume
        if self.kind == TriggerKind.SILENCE:
            return context.silence_duration_seconds
        if self.kind == TriggerKind.ENGAGEMENT:
            return context.engagement_level
        if self.kind == TriggerKind.HOUR:
            return hour
        return None

    def matches(self, context: ContextSnapshot, hour: int) -> bool:
        actual = self._context_value(context, hour)
        if actual is None:
            return False

        if self.operator == "contains":
            return isinstance(actual, str) and str(self.value).lower() in actual
        if self.operator == "equals":
            return actual == self.value
        if self.operator == "greater":
            return isinstance(actual, (int, float)) and actual > self.value
        if self.operator == "less":
            return isinstance(actual, (int, float)) and actual < self.value
        if self.operator == "between":
            return isinstance(actual, int) and hour_in_window(actual, self.value)
        return False


@dataclass
class Role:
    type: RoleType
    utterances: List[str]
    triggers: List[Trigger]
    weight: float = DEFAULT_ROLE_WEIGHT
    # Utterances that only make sense at certain times of day
    utterance_hours: Dict[str, HourWindow] = field(default_factory=dict)

    def is_eligible(self, context: ContextSnapshot, hour: int) -> bool:
        required = [t for t in self.triggers if t.required]
        optional = [t for t in self.triggers if not t.required]
        if not all(t.matches(context, hour) for t in required):
            return False
        if not optional:
            return bool(required)
        return any(t.matches(context, hour) for t in optional)

    def utterances_for_hour(self, hour: int) -> List[str]:
        allowed = [
            u for u in self.utterances
            if u not in self.utterance_hours or hour_in_window(hour, self.utterance_hours[u])
        ]
        return allowed or list(self.utterances)


def kw(word: str) -> Trigger:
    return Trigger(TriggerKind.KEYWORD, "contains", word)


COMMENT_PATTERNS: Dict[RoleType, List[str]] = {
    RoleType.GREETING: [
        "good evening!", "good morning~", "first time here", "hello!",
        "hey hey", "just arrived!", "hi everyone", "nice to meet you",
    ],
    RoleType.DEPARTURE: [
        "heading to bed", "good night~", "great stream today", "see you tomorrow!",
        "gotta go, bye", "will come back", "bye bye~", "take care!",
    ],
    RoleType.REACTION: [
        "so cute", "lol", "genius", "wow!", "no way", "whoa!",
        "seriously?", "that's hilarious", "amazing", "lmao",
    ],
    RoleType.AGREEMENT: [
        "true", "exactly", "i get that", "yeah yeah", "so true",
        "totally agree", "right?", "same here", "that's it",
    ],
    RoleType.QUESTION: [
        "what did you do today?", "into anything lately?", "how was it?",
        "what is that?", "since when?", "why though?", "what was it like?",
        "who with?", "where was that?",
    ],
    RoleType.INSIDER: [
        "the usual", "there it is", "classic", "again lol", "as expected",
        "here we go", "every time", "called it",
    ],
    RoleType.SUPPORT: [
        "don't overdo it", "rooting for you", "you got this", "take it easy",
        "are you ok?", "hang in there", "get some rest", "we believe in you",
    ],
    RoleType.PLAYFUL: [
        "was that foreshadowing?", "is this scripted?", "suspicious...",
        "plot twist?", "nice acting", "all according to plan", "sure, 'coincidence'",
    ],
}

UTTERANCE_HOURS: Dict[RoleType, Dict[str, HourWindow]] = {
    RoleType.GREETING: {
        "good morning~": (5, 12),
        "good evening!": (17, 5),
    },
    RoleType.DEPARTURE: {
        "heading to bed": (21, 6),
        "good night~": (21, 6),
    },
}

ROLE_TRIGGERS: Dict[RoleType, List[Trigger]] = {
    RoleType.GREETING: [
        kw("hello"), kw("first time"), kw("good morning"),
        Trigger(TriggerKind.SILENCE, "greater", 30),
        Trigger(TriggerKind.TOPIC, "equals", "session_start"),
    ],
    RoleType.DEPARTURE: [
        kw("that's it for"), kw("tired"), kw("going to sleep"), kw("bye"),
        Trigger(TriggerKind.TOPIC, "equals", "session_end"),
    ],
    RoleType.REACTION: [
        kw("!"), kw("amazing"), kw("wow"),
        Trigger(TriggerKind.VOLUME, "greater", 0.7),
        Trigger(TriggerKind.ENGAGEMENT, "greater", 0.8),
    ],
    RoleType.AGREEMENT: [
        kw("right"), kw("i think"), kw("but"), kw("actually"),
    ],
    RoleType.QUESTION: [
        kw("?"),
        Trigger(TriggerKind.SILENCE, "greater", 10),
        Trigger(TriggerKind.TOPIC, "equals", "new_topic"),
    ],
    RoleType.INSIDER: [
        kw("again"), kw("always"), kw("as usual"),
        Trigger(TriggerKind.TOPIC, "equals", "recurring_topic"),
    ],
    RoleType.SUPPORT: [
        kw("tired"), kw("hard"), kw("stressed"), kw("rough"),
        Trigger(TriggerKind.ENGAGEMENT, "less", 0.2),
    ],
    RoleType.PLAYFUL: [
        kw("coincidence"), kw("by chance"), kw("accident"),
        Trigger(TriggerKind.TOPIC, "equals", "coincidence"),
    ],
}


class RoleCatalog:
    """Static table of comment roles. Iteration follows catalog order."""

    def __init__(self, roles: Optional[List[Role]] = None):
        self.roles: List[Role] = roles if roles is not None else build_default_roles()
        self._by_type = {role.type: role for role in self.roles}

    def __iter__(self):
        return iter(self.roles)

    def __len__(self):
        return len(self.roles)

    def get(self, role_type: RoleType) -> Optional[Role]:
        return self._by_type.get(role_type)


def build_default_roles() -> List[Role]:
    return [
        Role(
            type=role_type,
            utterances=list(COMMENT_PATTERNS[role_type]),
            triggers=list(ROLE_TRIGGERS[role_type]),
            utterance_hours=dict(UTTERANCE_HOURS.get(role_type, {})),
        )
        for role_type in ROLE_ORDER
    ]
