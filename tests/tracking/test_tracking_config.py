"""
Tests for tracking settings and offset parsing.
"""
import pytest

from app.errors import ValidationError
from app.tracking.config import TrackingConfig, coerce_offset, parse_offsets, tracking_settings


class TestParseOffsets:
    """Tests for reading plan-date offsets from config values."""

    def test_none_returns_defaults(self):
        assert parse_offsets(None) == {"2": 7, "3": 10, "4": 12, "5": 14}

    def test_defaults_are_copied(self):
        offsets = parse_offsets(None)
        offsets["2"] = 99
        assert TrackingConfig.PLAN_DATE_OFFSETS["2"] == 7

    def test_env_string(self):
        assert parse_offsets("2:7, 3:10 ,4:-1") == {"2": 7, "3": 10, "4": -1}

    def test_env_string_ignores_empty_chunks(self):
        assert parse_offsets("2:7,,") == {"2": 7}

    def test_env_string_without_separator(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_offsets("2=7", "TRACKING_PLAN_OFFSETS")
        assert exc_info.value.field == "TRACKING_PLAN_OFFSETS"

    def test_env_string_with_non_integer_days(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_offsets("2:week")
        assert exc_info.value.field == "offsets.2"

    def test_mapping(self):
        assert parse_offsets({"7-1": "3", "8": 5}) == {"7-1": 3, "8": 5}

    def test_mapping_with_non_string_key(self):
        with pytest.raises(ValidationError):
            parse_offsets({2: 7})

    def test_unsupported_type(self):
        with pytest.raises(ValidationError):
            parse_offsets([("2", 7)])


class TestCoerceOffset:

    @pytest.mark.parametrize("value,expected", [(7, 7), ("14", 14), (" -2 ", -2), (0, 0)])
    def test_accepts_integers(self, value, expected):
        assert coerce_offset(value, "f") == expected

    @pytest.mark.parametrize("value", [True, False, 1.5, "1.5", None, "x"])
    def test_rejects_everything_else(self, value):
        with pytest.raises(ValidationError):
            coerce_offset(value, "f")


class TestTrackingSettings:
    """Tests for resolving settings from a Flask config mapping."""

    def test_defaults(self):
        settings = tracking_settings({})
        assert settings == {
            'rule_set': 'assignee',
            'anchor_stage_id': '1',
            'offsets': {"2": 7, "3": 10, "4": 12, "5": 14},
            'not_applicable': 'N/A',
            'timezone': 'Asia/Seoul',
        }

    def test_overrides(self):
        settings = tracking_settings({
            'TRACKING_STATUS_RULES': 'milestone',
            'TRACKING_ANCHOR_STAGE': '7',
            'TRACKING_PLAN_OFFSETS': '8:2',
            'TRACKING_NOT_APPLICABLE': 'SKIP',
            'TRACKING_TIMEZONE': 'UTC',
        })
        assert settings['rule_set'] == 'milestone'
        assert settings['anchor_stage_id'] == '7'
        assert settings['offsets'] == {"8": 2}
        assert settings['not_applicable'] == 'SKIP'
        assert settings['timezone'] == 'UTC'

    def test_bad_offsets_name_the_setting(self):
        with pytest.raises(ValidationError) as exc_info:
            tracking_settings({'TRACKING_PLAN_OFFSETS': 'nonsense'})
        assert exc_info.value.field == 'TRACKING_PLAN_OFFSETS'

    def test_stage_extra_fields(self):
        assert TrackingConfig.get_stage_extra_fields("8") == (
            "vendor_assembly", "vendor_install", "vendor_control", "vendor_program",
        )
        assert TrackingConfig.get_stage_extra_fields("3") == ()
