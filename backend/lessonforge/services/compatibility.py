from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum


class CompatibilityTier(str, Enum):
    perfect = "perfect"
    subject_only = "subject-only"
    teacher_only = "teacher-only"
    student_only = "student-only"
    teacher_no_prefs = "teacher-no-prefs"
    student_no_prefs = "student-no-prefs"
    no_preferences = "no-preferences"
    mismatch = "mismatch"
    no_teacher_selected = "no-teacher-selected"
    no_student_selected = "no-student-selected"


TIER_PRIORITY: dict[CompatibilityTier, int] = {
    CompatibilityTier.perfect: 5,
    CompatibilityTier.subject_only: 4,
    CompatibilityTier.teacher_only: 3,
    CompatibilityTier.student_only: 3,
    CompatibilityTier.teacher_no_prefs: 2,
    CompatibilityTier.student_no_prefs: 2,
    CompatibilityTier.no_preferences: 1,
    CompatibilityTier.mismatch: 0,
    CompatibilityTier.no_teacher_selected: -1,
    CompatibilityTier.no_student_selected: -1,
}


@dataclass(frozen=True)
class SubjectPreference:
    subject_id: str
    subject_type_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class MatchCounts:
    matching: int = 0
    partial: int = 0


@dataclass(frozen=True)
class CompatibilityResult:
    tier: CompatibilityTier
    matching_subjects_count: int = 0
    partial_matching_subjects_count: int = 0

    @property
    def priority(self) -> int:
        return tier_priority(self.tier)

    @property
    def has_matching_subjects(self) -> bool:
        return self.tier not in {CompatibilityTier.mismatch, CompatibilityTier.no_teacher_selected, CompatibilityTier.no_student_selected}


@dataclass(frozen=True)
class RankedCandidate:
    id: str
    name: str
    compatibility: CompatibilityResult


def tier_priority(tier: CompatibilityTier | None) -> int:
    if tier is None:
        return -1
    return TIER_PRIORITY[tier]


def to_preferences(raw: Iterable | None) -> list[SubjectPreference] | None:
    """Coerce stored preference payloads (dicts or objects) into ``SubjectPreference`` values."""
    if raw is None:
        return None
    preferences: list[SubjectPreference] = []
    for item in raw:
        if isinstance(item, SubjectPreference):
            preferences.append(item)
            continue
        if isinstance(item, dict):
            subject_id = item.get("subject_id") or item.get("subjectId")
            type_ids = item.get("subject_type_ids") or item.get("subjectTypeIds") or []
        else:
            subject_id = getattr(item, "subject_id", None)
            type_ids = getattr(item, "subject_type_ids", None) or []
        if not subject_id:
            continue
        preferences.append(SubjectPreference(subject_id=str(subject_id), subject_type_ids=frozenset(str(t) for t in type_ids)))
    return preferences


def match_counts(
    teacher_preferences: Sequence[SubjectPreference],
    student_preferences: Sequence[SubjectPreference],
) -> MatchCounts:
    matching = 0
    partial = 0
    counted: set[str] = set()
    for teacher_pref in teacher_preferences:
        for student_pref in student_preferences:
            if teacher_pref.subject_id != student_pref.subject_id:
                continue
            if teacher_pref.subject_id in counted:
                continue
            counted.add(teacher_pref.subject_id)
            if teacher_pref.subject_type_ids & student_pref.subject_type_ids:
                matching += 1
            else:
                partial += 1
    return MatchCounts(matching=matching, partial=partial)


def classify_pair(
    teacher_preferences: Sequence[SubjectPreference] | None,
    student_preferences: Sequence[SubjectPreference] | None,
) -> CompatibilityResult:
    teacher_prefs = list(teacher_preferences or [])
    student_prefs = list(student_preferences or [])

    if not teacher_prefs and not student_prefs:
        return CompatibilityResult(CompatibilityTier.no_preferences)
    if not teacher_prefs:
        return CompatibilityResult(CompatibilityTier.teacher_no_prefs, matching_subjects_count=len(student_prefs))
    if not student_prefs:
        return CompatibilityResult(CompatibilityTier.student_no_prefs, matching_subjects_count=len(teacher_prefs))

    counts = match_counts(teacher_prefs, student_prefs)
    if counts.matching > 0:
        tier = CompatibilityTier.perfect
    elif counts.partial > 0:
        tier = CompatibilityTier.subject_only
    else:
        tier = CompatibilityTier.mismatch
    return CompatibilityResult(
        tier,
        matching_subjects_count=counts.matching,
        partial_matching_subjects_count=counts.partial,
    )


def classify_subject(
    subject_id: str,
    teacher_preferences: Sequence[SubjectPreference] | None,
    student_preferences: Sequence[SubjectPreference] | None,
    *,
    teacher_selected: bool,
    student_selected: bool,
) -> CompatibilityResult:
    """Tier of one subject given whoever is currently selected."""
    teacher_prefs = list(teacher_preferences or [])
    student_prefs = list(student_preferences or [])
    teacher_pref = next((item for item in teacher_prefs if item.subject_id == subject_id), None)
    student_pref = next((item for item in student_prefs if item.subject_id == subject_id), None)

    if not teacher_selected and not student_selected:
        return CompatibilityResult(CompatibilityTier.no_preferences)
    if teacher_pref is not None and student_pref is not None:
        if teacher_pref.subject_type_ids & student_pref.subject_type_ids:
            return CompatibilityResult(CompatibilityTier.perfect, matching_subjects_count=1)
        return CompatibilityResult(CompatibilityTier.subject_only, partial_matching_subjects_count=1)
    if teacher_pref is not None:
        return CompatibilityResult(CompatibilityTier.teacher_only)
    if student_pref is not None:
        return CompatibilityResult(CompatibilityTier.student_only)
    if not teacher_prefs or not student_prefs:
        return CompatibilityResult(CompatibilityTier.no_preferences)
    return CompatibilityResult(CompatibilityTier.mismatch)


def name_sort_key(name: str) -> str:
    return unicodedata.normalize("NFKC", name).casefold()


def rank_candidates(candidates: Iterable[RankedCandidate]) -> list[RankedCandidate]:
    return sorted(
        candidates,
        key=lambda item: (-item.compatibility.priority, name_sort_key(item.name), item.id),
    )


def rank_teachers_for_student(
    teachers: Iterable[tuple[str, str, Sequence[SubjectPreference] | None]],
    student_preferences: Sequence[SubjectPreference] | None,
    *,
    student_selected: bool = True,
) -> list[RankedCandidate]:
    """Rank ``(id, name, preferences)`` teacher tuples against the chosen student."""
    ranked: list[RankedCandidate] = []
    for teacher_id, name, preferences in _normalized(teachers):
        if not student_selected:
            result = CompatibilityResult(CompatibilityTier.no_student_selected)
        else:
            result = classify_pair(preferences, student_preferences)
        ranked.append(RankedCandidate(id=teacher_id, name=name, compatibility=result))
    return rank_candidates(ranked)


def rank_students_for_teacher(
    students: Iterable[tuple[str, str, Sequence[SubjectPreference] | None]],
    teacher_preferences: Sequence[SubjectPreference] | None,
    *,
    teacher_selected: bool = True,
) -> list[RankedCandidate]:
    """Rank ``(id, name, preferences)`` student tuples against the chosen teacher."""
    ranked: list[RankedCandidate] = []
    for student_id, name, preferences in _normalized(students):
        if not teacher_selected:
            result = CompatibilityResult(CompatibilityTier.no_teacher_selected)
        else:
            result = classify_pair(teacher_preferences, preferences)
        ranked.append(RankedCandidate(id=student_id, name=name, compatibility=result))
    return rank_candidates(ranked)


def _normalized(people: Iterable[tuple[str, str, Sequence[SubjectPreference] | None]]):
    for person_id, name, preferences in people:
        yield str(person_id), name, list(preferences or [])
