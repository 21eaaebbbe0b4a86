import pytest

from config import RoleType, CommentOrigin
from systems.conversation_starters import (
    CONVERSATION_STARTERS, FOLLOW_UP_STARTERS, ConversationStarters, greeting_for_hour, map_topic_to_category,
)


@pytest.mark.parametrize("hour,expected", [
    (5, "good morning~"),
    (9, "good morning~"),
    (10, "hello!"),
    (16, "hello!"),
    (17, "good evening!"),
    (22, "hey, long day?"),
    (3, "hey, long day?"),
])
def test_greeting_for_hour(hour, expected):
    assert greeting_for_hour(hour) == expected


@pytest.mark.parametrize("topic,category", [
    (None, "general"),
    ("anime", "entertainment"),
    ("Cooking class", "food"),
    ("quantum physics", "general"),
])
def test_map_topic_to_category(topic, category):
    assert map_topic_to_category(topic) == category


class TestConversationStarters:
    def test_greeting_uses_clock_hour(self, morning_clock, rng):
        greeting = ConversationStarters(clock=morning_clock, rng=rng).session_greeting()
        assert greeting.content == "good morning~"
        assert greeting.role == RoleType.GREETING
        assert greeting.origin == CommentOrigin.STARTER

    def test_opening_sequence(self, afternoon_clock, rng):
        starters = ConversationStarters(clock=afternoon_clock, rng=rng)
        openers = starters.opening_sequence("anime", count=3)
        assert [c.role for c in openers] == [RoleType.GREETING, RoleType.QUESTION, RoleType.QUESTION]
        questions = [c.content for c in openers[1:]]
        assert all(q in CONVERSATION_STARTERS["entertainment"] for q in questions)
        assert questions[0] != questions[1]

    def test_starters_avoid_recent_picks(self, afternoon_clock, rng):
        starters = ConversationStarters(clock=afternoon_clock, rng=rng)
        picks = [starters.conversation_starter("weekend").content for _ in range(4)]
        assert len(set(picks)) == 4

    def test_follow_up_needs_long_silence(self, afternoon_clock, rng):
        starters = ConversationStarters(clock=afternoon_clock, rng=rng)
        assert starters.follow_up(10.0) is None
        follow_up = starters.follow_up(20.0)
        assert follow_up.role == RoleType.QUESTION
        assert follow_up.content in FOLLOW_UP_STARTERS
        assert follow_up.source_context.silence_duration_seconds == 20.0
