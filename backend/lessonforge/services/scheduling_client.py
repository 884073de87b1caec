"""HTTP client for the series preview and create/extend endpoints.

Local validation happens before any request is sent. Connection failures,
timeouts and non-success statuses become ``TransportError``; a create/extend
answered with ``success=false`` reconciles the caller's resolution engine
with the server's conflict set and raises ``ServerReconciliationError``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import requests

from lessonforge.core.config import Settings, get_settings
from lessonforge.core.exceptions import ScheduleValidationError, ServerReconciliationError, TransportError
from lessonforge.services.conflict_resolution import ConflictResolutionEngine, ResolutionAction, SessionAction
from lessonforge.services.conflict_service import Conflict
from lessonforge.services.normalization import normalize_conflicts
from lessonforge.services.series import SeriesDefinition, validate_time_window

logger = logging.getLogger(__name__)


@dataclass
class PreviewResult:
    dates: list[date] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    requires_confirmation: bool = False
    summary: dict[str, int] = field(default_factory=dict)


@dataclass
class SubmissionResult:
    series_id: str | None = None
    created_ids: list[str] = field(default_factory=list)
    skipped: list[date] = field(default_factory=list)


def definition_payload(definition: SeriesDefinition, notes: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "teacher_id": definition.teacher_id,
        "student_id": definition.student_id,
        "subject_id": definition.subject_id,
        "booth_id": definition.booth_id,
        "start_time": definition.start_time,
        "end_time": definition.end_time,
        "start_date": definition.start_date.isoformat(),
        "end_date": definition.end_date.isoformat() if definition.end_date else None,
        "days_of_week": list(definition.days_of_week),
        "check_availability": definition.check_availability,
    }
    if notes:
        payload["notes"] = notes
    return payload


def action_payload(action: SessionAction) -> dict[str, Any]:
    payload: dict[str, Any] = {"date": action.date.isoformat(), "action": action.action.value}
    if action.action == ResolutionAction.USE_ALTERNATIVE:
        payload["alternative_start_time"] = action.alternative_start_time
        payload["alternative_end_time"] = action.alternative_end_time
    return payload


def validate_actions(actions: Sequence[SessionAction]) -> None:
    seen: set[date] = set()
    for action in actions:
        if action.date in seen:
            raise ScheduleValidationError(
                "Only one session action is allowed per date",
                details={"date": action.date.isoformat()},
            )
        seen.add(action.date)
        if action.action == ResolutionAction.USE_ALTERNATIVE:
            if not action.alternative_start_time or not action.alternative_end_time:
                raise ScheduleValidationError(
                    "USE_ALTERNATIVE requires an alternative start and end time",
                    details={"date": action.date.isoformat()},
                )
            validate_time_window(action.alternative_start_time, action.alternative_end_time)


class SchedulingClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.scheduling_client_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self.settings.scheduling_client_timeout_seconds
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out after %.1fs", method, url, self.timeout)
            raise TransportError("Scheduling request timed out", details={"url": url}) from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError("Scheduling service is unreachable", details={"url": url}) from exc

        if not response.ok:
            message = f"Scheduling request failed with status {response.status_code}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            logger.warning("%s %s returned %s", method, url, response.status_code)
            raise TransportError(message, status_code=response.status_code, details={"url": url})

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "Scheduling service returned an invalid response",
                status_code=response.status_code,
                details={"url": url},
            ) from exc

    def _check_months(self, months: int, limit: int) -> None:
        if months < 1 or months > limit:
            raise ScheduleValidationError(
                f"months must be between 1 and {limit}",
                details={"months": months, "max_months": limit},
            )

    @staticmethod
    def _preview_result(body: dict[str, Any]) -> PreviewResult:
        return PreviewResult(
            dates=[date.fromisoformat(item) for item in body.get("dates") or []],
            conflicts=normalize_conflicts(body.get("conflicts")),
            requires_confirmation=bool(body.get("requires_confirmation", body.get("requiresConfirmation"))),
            summary=dict(body.get("summary") or {}),
        )

    def preview(self, definition: SeriesDefinition) -> PreviewResult:
        validate_time_window(definition.start_time, definition.end_time)
        if definition.end_date is not None and definition.end_date < definition.start_date:
            raise ScheduleValidationError("Series end date must not be before its start date")
        body = self._request("POST", "/class-series/preview", json=definition_payload(definition))
        return self._preview_result(body)

    def preview_extension(self, series_id: str, months: int) -> PreviewResult:
        self._check_months(months, self.settings.series_preview_max_months)
        body = self._request("GET", f"/class-series/{series_id}/extend/preview", params={"months": months})
        return self._preview_result(body)

    def _submission(self, body: dict[str, Any], engine: ConflictResolutionEngine | None) -> SubmissionResult:
        if not body.get("success"):
            conflicts = normalize_conflicts(body.get("conflicts"))
            if engine is not None:
                engine.reconcile(conflicts)
            unresolved = body.get("unresolved_dates") or body.get("unresolvedDates")
            if unresolved is None:
                unresolved = sorted({item.date.isoformat() for item in conflicts})
            message = body.get("message") or "The server reported new conflicts; review them and resubmit"
            raise ServerReconciliationError(
                message,
                conflicts=conflicts,
                details={"dates": [str(item)[:10] for item in unresolved]},
            )
        return SubmissionResult(
            series_id=body.get("series_id"),
            created_ids=list(body.get("created_ids") or []),
            skipped=[date.fromisoformat(item) for item in body.get("skipped") or []],
        )

    def create(
        self,
        definition: SeriesDefinition,
        actions: Sequence[SessionAction] = (),
        *,
        engine: ConflictResolutionEngine | None = None,
        notes: str | None = None,
    ) -> SubmissionResult:
        validate_time_window(definition.start_time, definition.end_time)
        validate_actions(actions)
        payload = {
            "definition": definition_payload(definition, notes),
            "session_actions": [action_payload(item) for item in actions],
        }
        return self._submission(self._request("POST", "/class-series", json=payload), engine)

    def extend(
        self,
        series_id: str,
        months: int,
        actions: Sequence[SessionAction] = (),
        *,
        engine: ConflictResolutionEngine | None = None,
    ) -> SubmissionResult:
        self._check_months(months, self.settings.series_extend_max_months)
        validate_actions(actions)
        payload = {"months": months, "session_actions": [action_payload(item) for item in actions]}
        return self._submission(self._request("POST", f"/class-series/{series_id}/extend", json=payload), engine)

    def submit_engine(self, series_id: str, months: int, engine: ConflictResolutionEngine) -> SubmissionResult:
        """Extend using the engine's compiled actions, reconciling it on rejection."""
        return self.extend(series_id, months, engine.compile(), engine=engine)
