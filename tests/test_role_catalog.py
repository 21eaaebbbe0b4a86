from config import RoleType, TriggerKind, ROLE_ORDER
from context.models import ContextSnapshot
from systems.role_catalog import RoleCatalog, Role, Trigger, hour_in_window, kw


class TestHourWindow:
    def test_plain_window(self):
        assert hour_in_window(5, (5, 12))
        assert hour_in_window(11, (5, 12))
        assert not hour_in_window(12, (5, 12))

    def test_window_wrapping_midnight(self):
        assert hour_in_window(23, (21, 6))
        assert hour_in_window(3, (21, 6))
        assert not hour_in_window(12, (21, 6))


class TestTrigger:
    def test_keyword_is_case_insensitive(self):
        assert kw("wow").matches(ContextSnapshot(recent_transcript="WOW that's great"), 14)

    def test_numeric_operators(self):
        loud = ContextSnapshot(speech_volume=0.9)
        assert Trigger(TriggerKind.VOLUME, "greater", 0.7).matches(loud, 14)
        assert not Trigger(TriggerKind.VOLUME, "less", 0.7).matches(loud, 14)

    def test_topic_equals(self):
        trigger = Trigger(TriggerKind.TOPIC, "equals", "session_end")
        assert trigger.matches(ContextSnapshot(current_topic="session_end"), 14)
        assert not trigger.matches(ContextSnapshot(), 14)

    def test_hour_between(self):
        late = Trigger(TriggerKind.HOUR, "between", (22, 6))
        assert late.matches(ContextSnapshot(), 23)
        assert late.matches(ContextSnapshot(), 3)
        assert not late.matches(ContextSnapshot(), 12)

    def test_unknown_operator_never_matches(self):
        assert not Trigger(TriggerKind.VOLUME, "roughly", 0.5).matches(ContextSnapshot(speech_volume=0.5), 14)


class TestRole:
    def test_any_optional_trigger_is_enough(self):
        role = Role(RoleType.REACTION, ["lol"], [kw("!"), Trigger(TriggerKind.VOLUME, "greater", 0.7)])
        assert role.is_eligible(ContextSnapshot(speech_volume=0.9), 14)
        assert not role.is_eligible(ContextSnapshot(), 14)

    def test_required_triggers_must_all_hold(self):
        role = Role(
            RoleType.QUESTION, ["why?"],
            [Trigger(TriggerKind.SILENCE, "greater", 10, required=True), kw("?")],
        )
        assert role.is_eligible(ContextSnapshot(recent_transcript="huh?", silence_duration_seconds=20), 14)
        assert not role.is_eligible(ContextSnapshot(recent_transcript="huh", silence_duration_seconds=20), 14)
        assert not role.is_eligible(ContextSnapshot(recent_transcript="huh?"), 14)

    def test_role_without_triggers_is_never_eligible(self):
        assert not Role(RoleType.INSIDER, ["classic"], []).is_eligible(ContextSnapshot(), 14)

    def test_hour_gated_utterances(self):
        greeting = RoleCatalog().get(RoleType.GREETING)
        afternoon = greeting.utterances_for_hour(14)
        assert "good morning~" not in afternoon
        assert "good evening!" not in afternoon
        assert "hello!" in afternoon
        assert "good morning~" in greeting.utterances_for_hour(8)
        assert "good evening!" in greeting.utterances_for_hour(2)

    def test_fully_gated_pool_falls_back_to_everything(self):
        role = Role(RoleType.DEPARTURE, ["good night~"], [kw("bye")], utterance_hours={"good night~": (21, 6)})
        assert role.utterances_for_hour(12) == ["good night~"]


class TestRoleCatalog:
    def test_default_catalog_follows_role_order(self):
        catalog = RoleCatalog()
        assert len(catalog) == 8
        assert [role.type for role in catalog] == ROLE_ORDER

    def test_every_role_has_utterances_and_triggers(self):
        for role in RoleCatalog():
            assert role.utterances
            assert role.triggers

    def test_missing_role(self):
        catalog = RoleCatalog([Role(RoleType.REACTION, ["lol"], [kw("!")])])
        assert catalog.get(RoleType.QUESTION) is None
