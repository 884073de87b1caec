from lessonforge.services.compatibility import (
    CompatibilityResult,
    CompatibilityTier,
    RankedCandidate,
    SubjectPreference,
    classify_pair,
    classify_subject,
    rank_candidates,
    rank_teachers_for_student,
    to_preferences,
)


def pref(subject_id, *type_ids):
    return SubjectPreference(subject_id=subject_id, subject_type_ids=frozenset(type_ids))


def test_perfect_when_subject_and_level_shared():
    result = classify_pair([pref("math", "hs"), pref("eng", "jh")], [pref("math", "hs", "jh")])
    assert result.tier == CompatibilityTier.perfect
    assert result.matching_subjects_count == 1
    assert result.priority == 5


def test_subject_only_when_levels_differ():
    result = classify_pair([pref("math", "hs")], [pref("math", "jh")])
    assert result.tier == CompatibilityTier.subject_only
    assert result.partial_matching_subjects_count == 1


def test_mismatch_when_no_subject_shared():
    result = classify_pair([pref("math", "hs")], [pref("eng", "hs")])
    assert result.tier == CompatibilityTier.mismatch
    assert result.priority == 0
    assert not result.has_matching_subjects


def test_one_sided_and_empty_preferences():
    assert classify_pair([], [pref("math")]).tier == CompatibilityTier.teacher_no_prefs
    assert classify_pair([pref("math")], None).tier == CompatibilityTier.student_no_prefs
    assert classify_pair(None, None).tier == CompatibilityTier.no_preferences


def test_each_teacher_subject_counts_once():
    result = classify_pair([pref("math", "hs"), pref("math", "hs")], [pref("math", "hs")])
    assert result.matching_subjects_count == 1


def test_classify_subject_for_one_sided_preference():
    teacher = [pref("math", "hs")]
    student = [pref("eng", "hs")]
    common = dict(teacher_selected=True, student_selected=True)
    assert classify_subject("math", teacher, student, **common).tier == CompatibilityTier.teacher_only
    assert classify_subject("eng", teacher, student, **common).tier == CompatibilityTier.student_only
    assert classify_subject("art", teacher, student, **common).tier == CompatibilityTier.mismatch
    assert classify_subject("math", None, None, teacher_selected=False, student_selected=False).tier == (
        CompatibilityTier.no_preferences
    )


def test_ranking_is_total_and_sorts_ties_by_name():
    def candidate(candidate_id, name, tier):
        return RankedCandidate(id=candidate_id, name=name, compatibility=CompatibilityResult(tier))

    ranked = rank_candidates(
        [
            candidate("3", "beta", CompatibilityTier.mismatch),
            candidate("2", "Beta", CompatibilityTier.perfect),
            candidate("1", "alpha", CompatibilityTier.perfect),
            candidate("0", "alpha", CompatibilityTier.perfect),
        ]
    )
    assert [item.id for item in ranked] == ["0", "1", "2", "3"]


def test_teachers_ranked_for_unselected_student():
    ranked = rank_teachers_for_student([("t1", "Kim", [pref("math")])], None, student_selected=False)
    assert ranked[0].compatibility.tier == CompatibilityTier.no_student_selected
    assert ranked[0].compatibility.priority == -1


def test_to_preferences_accepts_both_key_styles():
    prefs = to_preferences(
        [
            {"subject_id": "math", "subject_type_ids": ["hs"]},
            {"subjectId": "eng", "subjectTypeIds": ["jh"]},
            {"subject_type_ids": ["orphan"]},
        ]
    )
    assert prefs == [pref("math", "hs"), pref("eng", "jh")]
    assert to_preferences(None) is None
