"""
Tests for plan-date cascading (pure business logic).
These tests have no database or Flask dependencies.
"""
from datetime import date, datetime

import pytest

from app.errors import ValidationError
from app.tracking.cascade import ScheduleCascader, cascade
from app.tracking.records import StageRecord

STAGE_IDS = ["1", "2", "3", "4", "5", "6", "7", "7-1", "8"]
OFFSETS = {"1": 0, "2": 7, "3": 10, "4": 12, "5": 14}


@pytest.fixture
def cascader():
    return ScheduleCascader("1", OFFSETS, STAGE_IDS)


@pytest.fixture
def snapshot():
    """A project's records, with a hand-edited plan date on stage 3."""
    return {
        "1": StageRecord("p1", "1", plan_date=date(2025, 1, 1), assignee="Kim"),
        "3": StageRecord("p1", "3", plan_date=date(2025, 3, 3), memo="moved by hand"),
        "6": StageRecord("p1", "6", plan_date=date(2025, 4, 1)),
    }


# ==============================================================================
# CASCADE
# ==============================================================================

class TestCascade:
    """Tests for computing dependent plan dates."""

    def test_documented_scenario(self, cascader):
        """Test anchor 2025-01-01 with offsets 7/10/12/14."""
        result = cascader.cascade("1", date(2025, 1, 1))
        assert result == {
            "2": date(2025, 1, 8),
            "3": date(2025, 1, 11),
            "4": date(2025, 1, 13),
            "5": date(2025, 1, 15),
        }

    def test_anchor_offset_entry_is_not_returned(self, cascader):
        """Test that the anchor's own zero offset does not appear in the output."""
        assert "1" not in cascader.cascade("1", date(2025, 1, 1))

    def test_clearing_anchor_clears_dependents(self, cascader):
        assert cascader.cascade("1", None) == {"2": None, "3": None, "4": None, "5": None}

    def test_empty_string_clears_dependents(self, cascader):
        assert cascader.cascade("1", "") == {"2": None, "3": None, "4": None, "5": None}

    def test_non_anchor_edit_does_not_cascade(self, cascader):
        assert cascader.cascade("2", date(2025, 1, 1)) == {}
        assert cascader.cascade("8", None) == {}

    def test_same_input_gives_same_output(self, cascader):
        """Test that cascading is idempotent and does not accumulate."""
        first = cascader.cascade("1", date(2025, 5, 20))
        second = cascader.cascade("1", date(2025, 5, 20))
        assert first == second

    def test_clear_after_set_touches_same_stages(self, cascader):
        touched = cascader.cascade("1", date(2025, 5, 20))
        cleared = cascader.cascade("1", None)
        assert set(cleared) == set(touched)
        assert all(value is None for value in cleared.values())

    def test_month_rollover(self):
        assert cascade("1", date(2025, 2, 28), {"2": 10}) == {"2": date(2025, 3, 10)}

    def test_leap_year_rollover(self):
        assert cascade("1", date(2024, 2, 28), {"2": 10}) == {"2": date(2024, 3, 9)}

    def test_year_rollover(self):
        assert cascade("1", date(2024, 12, 25), {"5": 14}) == {"5": date(2025, 1, 8)}

    def test_iso_string_date(self, cascader):
        assert cascader.cascade("1", "2025-01-01")["2"] == date(2025, 1, 8)

    def test_time_of_day_is_ignored(self, cascader):
        """Test that a late-evening datetime does not shift the result."""
        assert cascader.cascade("1", datetime(2025, 1, 1, 23, 30))["2"] == date(2025, 1, 8)

    def test_negative_offsets(self):
        assert cascade("1", date(2025, 3, 1), {"0": -1}) == {"0": date(2025, 2, 28)}

    def test_default_offsets(self):
        """Test the default anchor and offsets when none are supplied."""
        result = cascade("1", date(2025, 1, 1))
        assert result == {
            "2": date(2025, 1, 8),
            "3": date(2025, 1, 11),
            "4": date(2025, 1, 13),
            "5": date(2025, 1, 15),
        }

    def test_custom_anchor(self):
        result = cascade("7", date(2025, 1, 1), {"7-1": 3, "8": 5}, anchor_stage_id="7")
        assert result == {"7-1": date(2025, 1, 4), "8": date(2025, 1, 6)}

    def test_derived_stages(self, cascader):
        assert cascader.dependent_stage_ids == ["2", "3", "4", "5"]
        assert cascader.is_derived("3")
        assert not cascader.is_derived("1")
        assert not cascader.is_derived("6")


# ==============================================================================
# VALIDATION
# ==============================================================================

class TestCascadeValidation:
    """Tests for fail-fast validation."""

    def test_malformed_date(self, cascader):
        with pytest.raises(ValidationError) as exc_info:
            cascader.cascade("1", "2025-13-01")
        assert exc_info.value.field == 'plan_date'

    def test_unsupported_date_type(self, cascader):
        with pytest.raises(ValidationError):
            cascader.cascade("1", 20250101)

    def test_unknown_stage(self, cascader):
        with pytest.raises(ValidationError) as exc_info:
            cascader.cascade("99", date(2025, 1, 1))
        assert exc_info.value.field == 'stage_id'

    def test_offsets_referencing_unconfigured_stage(self):
        with pytest.raises(ValidationError) as exc_info:
            ScheduleCascader("1", {"2": 7, "42": 3}, STAGE_IDS)
        assert exc_info.value.field == 'offsets'

    def test_unknown_anchor(self):
        with pytest.raises(ValidationError) as exc_info:
            ScheduleCascader("0", {"2": 7}, STAGE_IDS)
        assert exc_info.value.field == 'anchor_stage_id'

    @pytest.mark.parametrize("bad", ["seven", 7.5, True, None])
    def test_non_integer_offset(self, bad):
        with pytest.raises(ValidationError) as exc_info:
            ScheduleCascader("1", {"2": bad}, STAGE_IDS)
        assert exc_info.value.field == 'offsets.2'

    def test_offsets_must_be_a_mapping(self):
        with pytest.raises(ValidationError):
            ScheduleCascader("1", [("2", 7)], STAGE_IDS)

    def test_without_stage_ids_unknown_stage_is_rejected(self):
        """Test that the anchor and offset keys are the known stages when no catalogue is given."""
        with pytest.raises(ValidationError) as exc_info:
            cascade("99", date(2025, 1, 1), {"2": 7})
        assert exc_info.value.field == 'stage_id'

    def test_without_stage_ids_known_stages_are_accepted(self):
        cascader = ScheduleCascader("1", {"2": 7})
        assert cascader.cascade("2", date(2025, 1, 1)) == {}
        assert cascader.cascade("1", date(2025, 1, 1)) == {"2": date(2025, 1, 8)}


# ==============================================================================
# APPLY TO A SNAPSHOT
# ==============================================================================

class TestApply:
    """Tests for applying a plan-date edit to a record snapshot."""

    def test_anchor_edit_overwrites_dependents(self, cascader, snapshot):
        updated = cascader.apply(snapshot, "1", date(2025, 2, 1))

        assert updated["1"].plan_date == date(2025, 2, 1)
        assert updated["2"].plan_date == date(2025, 2, 8)
        assert updated["4"].plan_date == date(2025, 2, 13)
        assert updated["5"].plan_date == date(2025, 2, 15)

    def test_hand_edited_dependent_is_overwritten(self, cascader, snapshot):
        """Test that dependents are derived values, manual edits are not preserved."""
        updated = cascader.apply(snapshot, "1", date(2025, 2, 1))
        assert updated["3"].plan_date == date(2025, 2, 11)
        # Other fields pass through unchanged
        assert updated["3"].memo == "moved by hand"

    def test_unlisted_stage_is_untouched(self, cascader, snapshot):
        updated = cascader.apply(snapshot, "1", date(2025, 2, 1))
        assert updated["6"] is snapshot["6"]

    def test_missing_dependents_are_materialized(self, cascader, snapshot):
        updated = cascader.apply(snapshot, "1", date(2025, 2, 1))
        assert updated["2"] == StageRecord("p1", "2", plan_date=date(2025, 2, 8))

    def test_input_snapshot_is_not_mutated(self, cascader, snapshot):
        before = dict(snapshot)
        cascader.apply(snapshot, "1", date(2025, 2, 1))
        assert snapshot == before
        assert "2" not in snapshot

    def test_clearing_anchor(self, cascader, snapshot):
        updated = cascader.apply(snapshot, "1", None)
        assert updated["1"].plan_date is None
        assert updated["1"].assignee == "Kim"
        assert all(updated[sid].plan_date is None for sid in ["2", "3", "4", "5"])
        assert updated["6"].plan_date == date(2025, 4, 1)

    def test_non_anchor_edit_only_changes_that_stage(self, cascader, snapshot):
        updated = cascader.apply(snapshot, "3", date(2025, 3, 9))
        assert updated["3"].plan_date == date(2025, 3, 9)
        assert updated["1"] is snapshot["1"]
        assert set(updated) == set(snapshot)

    def test_empty_snapshot_needs_project_id(self, cascader):
        with pytest.raises(ValidationError) as exc_info:
            cascader.apply({}, "1", date(2025, 1, 1))
        assert exc_info.value.field == 'project_id'

    def test_empty_snapshot_with_project_id(self, cascader):
        updated = cascader.apply({}, "1", date(2025, 1, 1), project_id="p9")
        assert set(updated) == {"1", "2", "3", "4", "5"}
        assert updated["5"].project_id == "p9"

    def test_invalid_date_raises_before_any_change(self, cascader, snapshot):
        with pytest.raises(ValidationError):
            cascader.apply(snapshot, "1", "not-a-date")
