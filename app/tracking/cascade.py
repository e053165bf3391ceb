"""
Plan-date cascading from the anchor stage to its dependent stages.

Pure business logic: the caller owns the record snapshot and persists
whatever comes back.
"""
import logging
from datetime import date
from typing import Dict, Iterable, Mapping, Optional

from app.datetime_utils import add_days, to_day
from app.errors import ValidationError
from app.tracking.config import TrackingConfig, coerce_offset
from app.tracking.records import StageRecord

logger = logging.getLogger(__name__)


class ScheduleCascader:
    """
    Recomputes dependent plan dates when the anchor stage's plan date changes.

    Dependent dates are always overwritten, even if a planner edited one by
    hand; dependent plan dates are derived values.
    """

    def __init__(
        self,
        anchor_stage_id: str = TrackingConfig.ANCHOR_STAGE_ID,
        offsets: Optional[Mapping[str, int]] = None,
        stage_ids: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            anchor_stage_id: Stage whose plan-date edit triggers the cascade
            offsets: Dependent stage -> calendar days after the anchor date.
                     An entry for the anchor itself is ignored.
            stage_ids: Configured stages. When given, the anchor and every
                       offset key must be one of them. When omitted, the
                       anchor and the offset keys are the known stages.

        Raises:
            ValidationError: On an unknown stage or a non-integer offset
        """
        if offsets is None:
            offsets = TrackingConfig.PLAN_DATE_OFFSETS
        if not isinstance(offsets, Mapping):
            raise ValidationError('offsets', f"must be a mapping of stage id to days, got {offsets!r}")

        self.stage_ids = frozenset(stage_ids) if stage_ids is not None else None

        if self.stage_ids is not None and anchor_stage_id not in self.stage_ids:
            raise ValidationError('anchor_stage_id', f"unknown stage {anchor_stage_id!r}")

        dependents = {}
        for stage_id, days in offsets.items():
            if self.stage_ids is not None and stage_id not in self.stage_ids:
                raise ValidationError('offsets', f"references unconfigured stage {stage_id!r}")
            days = coerce_offset(days, f"offsets.{stage_id}")
            if stage_id != anchor_stage_id:
                dependents[stage_id] = days

        self.anchor_stage_id = anchor_stage_id
        self.offsets = dependents
        if self.stage_ids is None:
            self.stage_ids = frozenset(offsets) | {anchor_stage_id}

    @property
    def dependent_stage_ids(self):
        return list(self.offsets)

    def is_derived(self, stage_id: str) -> bool:
        """True if the stage's plan date is computed from the anchor (read-only in UIs)."""
        return stage_id in self.offsets

    def _check_stage(self, stage_id: str):
        if stage_id not in self.stage_ids:
            raise ValidationError('stage_id', f"unknown stage {stage_id!r}")

    def cascade(self, stage_id: str, new_plan_date) -> Dict[str, Optional[date]]:
        """
        Compute replacement plan dates for the dependent stages.

        Args:
            stage_id: Stage whose plan date was edited
            new_plan_date: New plan date, or None/'' when it was cleared

        Returns:
            dict: dependent stage id -> new plan date (None when cleared).
                  Empty when stage_id is not the anchor.

        Raises:
            ValidationError: Unknown stage or malformed date
        """
        self._check_stage(stage_id)
        anchor_date = to_day(new_plan_date, 'plan_date')

        if stage_id != self.anchor_stage_id:
            return {}

        if anchor_date is None:
            result = {sid: None for sid in self.offsets}
        else:
            result = {sid: add_days(anchor_date, days) for sid, days in self.offsets.items()}

        logger.debug("Cascaded plan date %s from stage %s to %d stages",
                     anchor_date, stage_id, len(result))
        return result

    def apply(
        self,
        records: Mapping[str, StageRecord],
        stage_id: str,
        new_plan_date,
        project_id: Optional[str] = None,
    ) -> Dict[str, StageRecord]:
        """
        Apply one plan-date edit to a snapshot of a project's records.

        Args:
            records: stage id -> StageRecord for one project (not modified)
            stage_id: Stage being edited
            new_plan_date: New plan date or None
            project_id: Used to materialize records missing from the snapshot.
                        Defaults to the project of any record in the snapshot.

        Returns:
            dict: New snapshot with the edit and any cascaded dates applied
        """
        cascaded = self.cascade(stage_id, new_plan_date)
        plan_date = to_day(new_plan_date, 'plan_date')

        if project_id is None:
            project_id = next((r.project_id for r in records.values()), None)
        if project_id is None:
            raise ValidationError('project_id', "is required when the snapshot is empty")

        def current(sid):
            return records.get(sid) or StageRecord.empty(project_id, sid)

        updated = dict(records)
        updated[stage_id] = current(stage_id).with_plan_date(plan_date)
        for sid, dependent_date in cascaded.items():
            updated[sid] = current(sid).with_plan_date(dependent_date)
        return updated


def cascade(
    stage_id: str,
    new_plan_date,
    offsets: Optional[Mapping[str, int]] = None,
    anchor_stage_id: str = TrackingConfig.ANCHOR_STAGE_ID,
    stage_ids: Optional[Iterable[str]] = None,
) -> Dict[str, Optional[date]]:
    """Convenience wrapper: build a ScheduleCascader and cascade one edit."""
    return ScheduleCascader(anchor_stage_id, offsets, stage_ids).cascade(stage_id, new_plan_date)
