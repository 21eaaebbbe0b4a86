# Save as: chat_companion/systems/conversation_starters.py
import random
import time
from collections import deque
from datetime import datetime
from typing import Callable, List, Optional
import config
from config import RoleType, CommentOrigin
from context.models import Comment, ContextSnapshot

CONVERSATION_STARTERS = {
    "general": [
        "eaten yet?", "into anything lately?", "watching any good shows?",
        "how was your day?", "anything fun happen?", "how's it going?",
        "what have you been up to?",
    ],
    "food": [
        "what did you eat today?", "had anything tasty lately?", "hungry?",
        "favorite food?", "what are you craving?", "had breakfast?",
    ],
    "entertainment": [
        "seen any good movies?", "playing any games?", "what music are you into?",
        "reading anything?", "what are you watching these days?",
    ],
    "daily": [
        "what did you do today?", "plans for tomorrow?", "busy lately?",
        "anything new going on?", "how are you feeling?",
    ],
    "work": [
        "long day at work?", "studying hard?", "how's the project going?",
        "working late today?",
    ],
    "weather": [
        "nice weather today?", "is it cold there?", "raining over there?",
        "seasons are changing, huh",
    ],
    "weekend": [
        "day off today?", "what did you do on the weekend?", "get some rest?",
        "going anywhere this weekend?",
    ],
}

TOPIC_CATEGORIES = {
    "food": "food", "cooking": "food", "dinner": "food", "lunch": "food", "meal": "food",
    "anime": "entertainment", "movie": "entertainment", "game": "entertainment",
    "music": "entertainment", "book": "entertainment", "reading": "entertainment",
    "work": "work", "job": "work", "study": "work", "school": "work", "project": "work",
    "day": "daily", "life": "daily", "today": "daily",
    "weather": "weather", "season": "weather", "rain": "weather",
    "weekend": "weekend", "holiday": "weekend", "vacation": "weekend",
}

FOLLOW_UP_STARTERS = [
    "anything you want to talk about?", "what's up?", "you ok?",
    "what are you thinking about?", "how are you feeling today?", "something happen?",
]


def greeting_for_hour(hour: int) -> str:
    if 5 <= hour < 10:
        return "good morning~"
    if 10 <= hour < 17:
        return "hello!"
    if 17 <= hour < 22:
        return "good evening!"
    return "hey, long day?"


def map_topic_to_category(topic: Optional[str]) -> str:
    if not topic:
        return "general"
    topic = topic.lower().strip()
    if topic in TOPIC_CATEGORIES:
        return TOPIC_CATEGORIES[topic]
    for key, category in TOPIC_CATEGORIES.items():
        if key in topic:
            return category
    return "general"


class ConversationStarters:
    """Scripted openers: a time-of-day greeting, topic starters and silence follow-ups."""

    def __init__(self, clock: Callable[[], float] = time.time, rng: Optional[random.Random] = None):
        self.clock = clock
        self.rng = rng or random.Random()
        self.used = deque(maxlen=config.STARTER_MEMORY_SIZE)

    def _comment(self, role: RoleType, content: str, topic: Optional[str], silence: float = 0.0) -> Comment:
        return Comment(
            role=role,
            content=content,
            source_context=ContextSnapshot(current_topic=topic, silence_duration_seconds=silence),
            origin=CommentOrigin.STARTER,
            created_at=self.clock(),
        )

    def session_greeting(self) -> Comment:
        hour = datetime.fromtimestamp(self.clock()).hour
        return self._comment(RoleType.GREETING, greeting_for_hour(hour), "session_start")

    def conversation_starter(self, topic: Optional[str] = None) -> Comment:
        category = map_topic_to_category(topic)
        pool = CONVERSATION_STARTERS.get(category, CONVERSATION_STARTERS["general"])
        fresh = [s for s in pool if s not in self.used] or list(pool)
        choice = self.rng.choice(fresh)
        self.used.append(choice)
        return self._comment(RoleType.QUESTION, choice, topic or "general")

    def opening_sequence(self, topic: Optional[str] = None, count: int = 2) -> List[Comment]:
        if count <= 0:
            return []
        openers = [self.session_greeting()]
        for _ in range(count - 1):
            openers.append(self.conversation_starter(topic))
        return openers

    def follow_up(self, silence_seconds: float) -> Optional[Comment]:
        if silence_seconds < config.FOLLOW_UP_SILENCE_SECONDS:
            return None
        return self._comment(RoleType.QUESTION, self.rng.choice(FOLLOW_UP_STARTERS), "follow_up", silence_seconds)

    def reset(self):
        self.used.clear()
