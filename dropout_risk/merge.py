"""Merge attendance, assessment and attempts records into student profiles."""

import logging
from typing import Dict, Iterable, List, Tuple

import icu

from dropout_risk.models import AttendanceRecord, AssessmentRecord, AttemptsRecord, StudentProfile

logger = logging.getLogger(__name__)

TEST_COUNT = 3

# Root (language-neutral) collation
_COLLATOR = icu.Collator.createInstance(icu.Locale.getRoot())


def student_id_sort_key(student_id: str) -> Tuple[bytes, str]:
    """Collation key for a student ID; the raw string breaks collation ties."""
    return (_COLLATOR.getSortKey(student_id), student_id)


def _index_by_student(records: Iterable) -> Dict[str, object]:
    """Map student_id to record. A later duplicate replaces an earlier one."""
    return {record.student_id: record for record in records}


def merge_student_data(
    attendance: List[AttendanceRecord],
    assessment: List[AssessmentRecord],
    attempts: List[AttemptsRecord]
) -> List[StudentProfile]:
    """
    Join the three sources on student ID into one profile per student.

    Every student seen in any source appears exactly once. Fields from a
    missing source default to zero (test scores to [0, 0, 0]), so partial
    data shows up as risk rather than being dropped.

    Args:
        attendance: Attendance records
        assessment: Assessment records
        attempts: Attempts records

    Returns:
        Profiles sorted by student ID (locale-aware, ascending)
    """
    attendance_map = _index_by_student(attendance)
    assessment_map = _index_by_student(assessment)
    attempts_map = _index_by_student(attempts)

    all_student_ids = set(attendance_map) | set(assessment_map) | set(attempts_map)

    profiles = []
    for student_id in sorted(all_student_ids, key=student_id_sort_key):
        att = attendance_map.get(student_id)
        assess = assessment_map.get(student_id)
        tries = attempts_map.get(student_id)

        if assess is not None:
            test_scores = (assess.test_score_1, assess.test_score_2, assess.test_score_3)
        else:
            test_scores = (0.0, 0.0, 0.0)

        profiles.append(StudentProfile(
            student_id=student_id,
            attendance=att.attendance_percentage if att is not None else 0.0,
            test_scores=test_scores,
            average_score=sum(test_scores) / TEST_COUNT,
            attempts_used=tries.attempts_used if tries is not None else 0
        ))

    logger.debug(
        "Merged %d students (attendance=%d, assessment=%d, attempts=%d records)",
        len(profiles), len(attendance), len(assessment), len(attempts)
    )
    return profiles
