"""
Tests for the immutable SimulationFlags value.
"""

from nestegglab.core.flags import SimulationFlags


class TestSimulationFlags:
    def test_initial_flags(self):
        flags = SimulationFlags.initial()
        assert not flags.survivor_mode
        assert not flags.refill_mode
        assert not flags.has_active_contingency
        assert flags.get_custom_flag("anything") is None

    def test_unchanged_transition_returns_same_instance(self):
        flags = SimulationFlags.initial()
        assert flags.with_survivor_mode(False) is flags
        assert flags.with_refill_mode(False) is flags
        assert flags.with_contingency_active("LTC", False) is flags
        assert flags.with_custom_flag("missing", None) is flags

    def test_transitions_do_not_mutate(self):
        flags = SimulationFlags.initial()
        survivor = flags.with_survivor_mode(True)
        assert survivor.survivor_mode
        assert not flags.survivor_mode

    def test_contingency_on_and_off(self):
        flags = SimulationFlags.initial().with_contingency_active("LTC", True)
        assert flags.is_contingency_active("LTC")
        assert flags.has_active_contingency
        assert not flags.is_contingency_active("DISABILITY")

        cleared = flags.with_contingency_active("LTC", False)
        assert not cleared.has_active_contingency
        assert cleared == SimulationFlags.initial()

    def test_custom_flag_none_removes(self):
        flags = SimulationFlags.initial().with_custom_flag("roth_ladder", True)
        assert flags.get_custom_flag("roth_ladder") is True
        assert flags.with_custom_flag("roth_ladder", True) is flags
        assert flags.with_custom_flag("roth_ladder", None) == SimulationFlags.initial()

    def test_equal_flags_hash_equal(self):
        a = SimulationFlags.initial().with_custom_flag("x", 1).with_refill_mode(True)
        b = SimulationFlags.initial().with_refill_mode(True).with_custom_flag("x", 1)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1
