"""
Stage tracking configuration module.

Defaults for status classification and plan-date cascading. Deployments
override them through the Flask config (see app/config.py); the helpers
here turn those raw settings into validated values.
"""

from typing import Dict, Mapping, Optional, Tuple

from app.errors import ValidationError


class TrackingConfig:
    """
    Default tracking parameters.

    Offsets are calendar days after the anchor stage's plan date.
    """

    # Stage whose plan-date edit cascades to the dependent stages
    ANCHOR_STAGE_ID: str = "1"

    # Dependent stage -> days after the anchor plan date
    PLAN_DATE_OFFSETS: Dict[str, int] = {
        "2": 7,
        "3": 10,
        "4": 12,
        "5": 14,
    }

    # Assignee marker meaning "this stage does not apply to the project"
    NOT_APPLICABLE_ASSIGNEE: str = "N/A"

    # One of: assignee, simple, milestone
    STATUS_RULE_SET: str = "assignee"

    TIMEZONE: str = "Asia/Seoul"

    # Auxiliary fields each stage exposes on the input screen
    STAGE_EXTRA_FIELDS: Dict[str, Tuple[str, ...]] = {
        "7-1": ("remark_design_work", "remark_outsource_design"),
        "8": ("vendor_assembly", "vendor_install", "vendor_control", "vendor_program"),
    }

    @classmethod
    def get_stage_extra_fields(cls, stage_id: str) -> Tuple[str, ...]:
        """Auxiliary field names shown for a stage (empty for most stages)."""
        return cls.STAGE_EXTRA_FIELDS.get(stage_id, ())


def parse_offsets(raw, field: str = "offsets") -> Dict[str, int]:
    """
    Parse plan-date offsets.

    Accepts a mapping (``{"2": 7}``) or the env-var form ``"2:7,3:10"``.

    Raises:
        ValidationError: On malformed entries or non-integer offsets
    """
    if raw is None:
        return dict(TrackingConfig.PLAN_DATE_OFFSETS)

    if isinstance(raw, str):
        pairs = []
        for chunk in raw.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            stage_id, sep, days = chunk.partition(":")
            if not sep:
                raise ValidationError(field, f"expected 'stage:days', got {chunk!r}")
            pairs.append((stage_id.strip(), days.strip()))
    elif isinstance(raw, Mapping):
        pairs = list(raw.items())
    else:
        raise ValidationError(field, f"unsupported offsets value {raw!r}")

    offsets = {}
    for stage_id, days in pairs:
        if not isinstance(stage_id, str) or not stage_id:
            raise ValidationError(field, f"stage id must be a non-empty string, got {stage_id!r}")
        offsets[stage_id] = coerce_offset(days, f"{field}.{stage_id}")
    return offsets


def coerce_offset(value, field: str) -> int:
    """Return an integer day offset or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(field, f"offset must be an integer number of days, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(field, f"offset must be an integer number of days, got {value!r}")


def tracking_settings(config: Optional[Mapping] = None) -> dict:
    """
    Resolve tracking settings from a Flask config mapping, falling back to defaults.
    """
    config = config or {}
    return {
        'rule_set': config.get("TRACKING_STATUS_RULES") or TrackingConfig.STATUS_RULE_SET,
        'anchor_stage_id': config.get("TRACKING_ANCHOR_STAGE") or TrackingConfig.ANCHOR_STAGE_ID,
        'offsets': parse_offsets(config.get("TRACKING_PLAN_OFFSETS"), "TRACKING_PLAN_OFFSETS"),
        'not_applicable': config.get("TRACKING_NOT_APPLICABLE") or TrackingConfig.NOT_APPLICABLE_ASSIGNEE,
        'timezone': config.get("TRACKING_TIMEZONE") or TrackingConfig.TIMEZONE,
    }
