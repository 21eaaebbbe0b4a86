import pytest

from config import RoleType, CommentOrigin
from context.models import ContextSnapshot
from systems.role_catalog import RoleCatalog, Role, kw
from systems.rule_based_generator import RuleBasedGenerator

EXCITED = ContextSnapshot(recent_transcript="that was great!")


def two_role_catalog():
    return RoleCatalog([
        Role(RoleType.REACTION, ["lol", "wow"], [kw("!")]),
        Role(RoleType.AGREEMENT, ["true", "exactly"], [kw("!")]),
    ])


class TestRanking:
    def test_tie_breaks_by_catalog_order(self, afternoon_clock):
        generator = RuleBasedGenerator(two_role_catalog(), clock=afternoon_clock)
        ranked = generator.rank_roles(EXCITED)
        assert [r.type for r in ranked] == [RoleType.REACTION, RoleType.AGREEMENT]

    def test_learned_weight_wins(self, afternoon_clock):
        generator = RuleBasedGenerator(two_role_catalog(), clock=afternoon_clock)
        weights = {RoleType.REACTION: 0.9, RoleType.AGREEMENT: 1.2}
        assert generator.rank_roles(EXCITED, weights)[0].type == RoleType.AGREEMENT

    def test_ineligible_roles_are_dropped(self, afternoon_clock):
        generator = RuleBasedGenerator(clock=afternoon_clock)
        ranked = generator.rank_roles(ContextSnapshot(recent_transcript="i'm so tired"))
        assert {r.type for r in ranked} == {RoleType.DEPARTURE, RoleType.SUPPORT}


class TestGenerate:
    def test_comment_carries_role_and_context(self, afternoon_clock, rng):
        generator = RuleBasedGenerator(two_role_catalog(), clock=afternoon_clock, rng=rng)
        comment = generator.generate(EXCITED)
        assert comment.role == RoleType.REACTION
        assert comment.content in ("lol", "wow")
        assert comment.origin == CommentOrigin.RULE
        assert comment.source_context is EXCITED
        assert comment.created_at == afternoon_clock()

    def test_no_eligible_role_returns_none(self, afternoon_clock):
        generator = RuleBasedGenerator(clock=afternoon_clock)
        assert generator.generate(ContextSnapshot()) is None
        assert len(generator.history) == 0

    def test_no_immediate_repeats_with_two_utterances(self, afternoon_clock, rng):
        catalog = RoleCatalog([Role(RoleType.REACTION, ["lol", "wow"], [kw("!")])])
        generator = RuleBasedGenerator(catalog, clock=afternoon_clock, rng=rng)
        contents = [generator.generate(EXCITED).content for _ in range(10)]
        assert set(contents) == {"lol", "wow"}
        for previous, current in zip(contents, contents[1:]):
            assert previous != current

    def test_recent_utterances_avoided(self, afternoon_clock, rng):
        utterances = [f"line {i}" for i in range(8)]
        catalog = RoleCatalog([Role(RoleType.REACTION, utterances, [kw("!")])])
        generator = RuleBasedGenerator(catalog, recent_window=5, clock=afternoon_clock, rng=rng)
        contents = [generator.generate(EXCITED).content for _ in range(30)]
        for i in range(5, len(contents)):
            assert contents[i] not in contents[i - 5:i]

    def test_hour_gated_lines_skipped_in_afternoon(self, afternoon_clock, rng):
        generator = RuleBasedGenerator(clock=afternoon_clock, rng=rng)
        context = ContextSnapshot(current_topic="session_start")
        for _ in range(20):
            comment = generator.generate(context)
            assert comment.role == RoleType.GREETING
            assert comment.content not in ("good morning~", "good evening!")

    def test_min_interval_gate(self, afternoon_clock, rng):
        generator = RuleBasedGenerator(two_role_catalog(), min_interval_seconds=10, clock=afternoon_clock, rng=rng)
        assert generator.generate(EXCITED) is not None
        assert generator.generate(EXCITED) is None
        afternoon_clock.advance(10)
        assert generator.generate(EXCITED) is not None


class TestFillerAndStats:
    def test_filler(self, afternoon_clock):
        filler = RuleBasedGenerator(clock=afternoon_clock).make_filler(EXCITED)
        assert filler.content == "..."
        assert filler.role == RoleType.REACTION
        assert filler.origin == CommentOrigin.FILLER

    def test_stats(self, afternoon_clock, rng):
        generator = RuleBasedGenerator(two_role_catalog(), clock=afternoon_clock, rng=rng)
        generator.generate(EXCITED)
        afternoon_clock.advance(4)
        generator.generate(EXCITED)
        stats = generator.get_stats()
        assert stats["total_comments"] == 2
        assert stats["role_distribution"] == {"reaction": 2}
        assert stats["average_interval"] == pytest.approx(4.0)

    def test_reset(self, afternoon_clock, rng):
        generator = RuleBasedGenerator(two_role_catalog(), min_interval_seconds=10, clock=afternoon_clock, rng=rng)
        generator.generate(EXCITED)
        generator.reset()
        assert generator.get_stats()["total_comments"] == 0
        assert generator.generate(EXCITED) is not None
