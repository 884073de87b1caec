"""Operator decisions for the flagged dates of a series.

Each flagged date starts with no action. The operator may skip it, force it
through, or move it to an alternative time; only dates with a decision are
compiled into the ``SessionAction`` list sent to the create/extend endpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from lessonforge.core.exceptions import ScheduleValidationError
from lessonforge.services.availability import TimeRange
from lessonforge.services.conflict_service import Conflict
from lessonforge.services.time_slots import parse_time_to_minutes

logger = logging.getLogger(__name__)


class ResolutionAction(str, Enum):
    SKIP = "SKIP"
    FORCE_CREATE = "FORCE_CREATE"
    USE_ALTERNATIVE = "USE_ALTERNATIVE"


BULK_ACTIONS = frozenset({ResolutionAction.SKIP, ResolutionAction.FORCE_CREATE})


@dataclass(frozen=True)
class SessionAction:
    date: date
    action: ResolutionAction
    alternative_start_time: str | None = None
    alternative_end_time: str | None = None


@dataclass(frozen=True)
class DateResolution:
    action: ResolutionAction | None = None
    edited_time: TimeRange | None = None
    is_editing: bool = False
    draft_time: TimeRange | None = None


class ConflictResolutionEngine:
    def __init__(self, conflicts: Iterable[Conflict], start_time: str, end_time: str) -> None:
        self._original = TimeRange(start_time, end_time)
        self._conflicts: dict[date, list[Conflict]] = {}
        self._states: dict[date, DateResolution] = {}
        self._load(conflicts)
        for target in self._conflicts:
            self._states[target] = DateResolution()

    def _load(self, conflicts: Iterable[Conflict]) -> None:
        grouped: dict[date, list[Conflict]] = {}
        for conflict in conflicts:
            grouped.setdefault(conflict.date, []).append(conflict)
        self._conflicts = dict(sorted(grouped.items()))

    @property
    def original_time(self) -> TimeRange:
        return self._original

    @property
    def dates(self) -> list[date]:
        return list(self._conflicts)

    @property
    def states(self) -> Mapping[date, DateResolution]:
        return dict(self._states)

    def conflicts_for(self, target: date) -> list[Conflict]:
        return list(self._conflicts.get(target, []))

    def state(self, target: date) -> DateResolution:
        self._require_known(target)
        return self._states[target]

    def _require_known(self, target: date) -> None:
        if target not in self._states:
            raise ScheduleValidationError(
                "No conflict is recorded for this date",
                details={"date": target.isoformat()},
            )

    def set_action(self, target: date, action: ResolutionAction | None) -> DateResolution:
        self._require_known(target)
        current = self._states[target]
        if current.action == action:
            return current

        if action == ResolutionAction.USE_ALTERNATIVE:
            seed = current.edited_time or self._original
            updated = replace(current, action=action, is_editing=True, draft_time=seed)
        else:
            updated = replace(current, action=action, is_editing=False, draft_time=None)
        self._states[target] = updated
        return updated

    def begin_edit(self, target: date) -> DateResolution:
        """Reopen the alternative-time editor, seeded from the committed edit if any."""
        self._require_known(target)
        current = self._states[target]
        seed = current.edited_time or self._original
        updated = replace(current, action=ResolutionAction.USE_ALTERNATIVE, is_editing=True, draft_time=seed)
        self._states[target] = updated
        return updated

    def update_draft(self, target: date, start_time: str, end_time: str) -> DateResolution:
        self._require_known(target)
        current = self._states[target]
        if not current.is_editing:
            raise ScheduleValidationError(
                "No alternative time is being edited for this date",
                details={"date": target.isoformat()},
            )
        updated = replace(current, draft_time=TimeRange(start_time, end_time))
        self._states[target] = updated
        return updated

    def commit_alternative_time(self, target: date, start_time: str, end_time: str) -> DateResolution:
        self._require_known(target)
        try:
            valid = parse_time_to_minutes(start_time) < parse_time_to_minutes(end_time)
        except ValueError as exc:
            raise ScheduleValidationError(
                str(exc), details={"date": target.isoformat(), "start_time": start_time, "end_time": end_time}
            ) from exc
        if not valid:
            raise ScheduleValidationError(
                "Alternative start time must be earlier than its end time",
                details={"date": target.isoformat(), "start_time": start_time, "end_time": end_time},
            )
        edited = TimeRange(start_time, end_time)
        updated = DateResolution(
            action=ResolutionAction.USE_ALTERNATIVE,
            edited_time=edited,
            is_editing=False,
            draft_time=None,
        )
        self._states[target] = updated
        return updated

    def cancel_edit(self, target: date) -> DateResolution:
        self._require_known(target)
        current = self._states[target]
        action = ResolutionAction.USE_ALTERNATIVE if current.edited_time is not None else None
        updated = replace(current, action=action, is_editing=False, draft_time=None)
        self._states[target] = updated
        return updated

    def bulk_apply(self, dates: Iterable[date], action: ResolutionAction) -> None:
        if action not in BULK_ACTIONS:
            raise ScheduleValidationError(
                "Only SKIP and FORCE_CREATE can be applied to several dates at once",
                details={"action": getattr(action, "value", action)},
            )
        targets = list(dates)
        for target in targets:
            self._require_known(target)
        for target in targets:
            self.set_action(target, action)

    def reset(self, target: date | None = None) -> None:
        if target is None:
            for key in self._states:
                self._states[key] = DateResolution()
            return
        self._require_known(target)
        self._states[target] = DateResolution()

    def compile(self) -> list[SessionAction]:
        actions: list[SessionAction] = []
        for target in sorted(self._states):
            state = self._states[target]
            if state.action is None:
                continue
            if state.action == ResolutionAction.USE_ALTERNATIVE:
                chosen = state.edited_time or self._original
                actions.append(
                    SessionAction(
                        date=target,
                        action=state.action,
                        alternative_start_time=chosen.start_time,
                        alternative_end_time=chosen.end_time,
                    )
                )
            else:
                actions.append(SessionAction(date=target, action=state.action))
        return actions

    def reconcile(self, conflicts: Iterable[Conflict]) -> None:
        """Replace the conflict set after the server re-validated a submission."""
        previous = set(self._states)
        self._load(conflicts)
        current = set(self._conflicts)
        self._states = {
            target: self._states.get(target, DateResolution()) for target in self._conflicts
        }
        logger.warning(
            "Reconciled conflicts: %d dates kept, %d dropped, %d new",
            len(previous & current),
            len(previous - current),
            len(current - previous),
        )

    def unresolved_dates(self) -> list[date]:
        return [target for target in sorted(self._states) if self._states[target].action is None]

    def summary(self) -> dict[str, int]:
        counts = {"total": len(self._states), "unresolved": 0}
        for action in ResolutionAction:
            counts[action.value.lower()] = 0
        for state in self._states.values():
            if state.action is None:
                counts["unresolved"] += 1
            else:
                counts[state.action.value.lower()] += 1
        return counts
