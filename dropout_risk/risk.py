"""Risk scoring logic: fixed explainable rules, ranking and distribution."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

import pandas as pd

from dropout_risk.merge import merge_student_data
from dropout_risk.models import (
    AttendanceRecord,
    AssessmentRecord,
    AttemptsRecord,
    RiskDistribution,
    RiskFlag,
    StudentProfile,
    StudentRiskProfile,
)

logger = logging.getLogger(__name__)

ATTENDANCE_THRESHOLD = 75.0
AVERAGE_SCORE_THRESHOLD = 40.0
ATTEMPTS_THRESHOLD = 2
MAX_RISK_SCORE = 100

SAFE_MAX_SCORE = 30
WATCHLIST_MAX_SCORE = 60


def _format_percent(value: float) -> str:
    """One decimal place, halves rounded up on the exact stored value (72.25 -> 72.3)."""
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _format_score(value: float) -> str:
    """Print whole numbers without a trailing .0 (80, not 80.0)."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _is_declining(scores: Sequence[float]) -> bool:
    score1, score2, score3 = scores
    return score1 > score2 and score2 > score3


class RiskRule(NamedTuple):
    """One scoring rule: a predicate, its weight and its explanation."""
    name: str
    points: int
    condition: str
    triggered: Callable[[StudentProfile], bool]
    describe: Callable[[StudentProfile], str]


# Evaluation order is also the order flags are reported in
RISK_RULES: List[RiskRule] = [
    RiskRule(
        name='Low Attendance',
        points=30,
        condition='Attendance below 75%',
        triggered=lambda p: p.attendance < ATTENDANCE_THRESHOLD,
        describe=lambda p: f"Attendance is {_format_percent(p.attendance)}% (below 75% threshold)",
    ),
    RiskRule(
        name='Low Test Average',
        points=30,
        condition='Average test score below 40%',
        triggered=lambda p: p.average_score < AVERAGE_SCORE_THRESHOLD,
        describe=lambda p: f"Average score is {_format_percent(p.average_score)}% (below 40% threshold)",
    ),
    RiskRule(
        name='Declining Trend',
        points=20,
        condition='Declining test score trend',
        triggered=lambda p: _is_declining(p.test_scores),
        describe=lambda p: "Test scores declining: " + " → ".join(_format_score(s) for s in p.test_scores),
    ),
    RiskRule(
        name='Multiple Attempts',
        points=20,
        condition='2 or more attempts used',
        triggered=lambda p: p.attempts_used >= ATTEMPTS_THRESHOLD,
        describe=lambda p: f"Used {p.attempts_used} attempts (threshold: 2)",
    ),
]

RISK_LABELS = {
    'safe': 'Safe',
    'watchlist': 'Watchlist',
    'at-risk': 'At Risk',
}

RISK_COLORS = {
    'safe': '#22c55e',
    'watchlist': '#eab308',
    'at-risk': '#ef4444',
}

# (level, min score, max score), inclusive on both ends
RISK_LEVEL_BANDS = [
    ('safe', 0, SAFE_MAX_SCORE),
    ('watchlist', SAFE_MAX_SCORE + 1, WATCHLIST_MAX_SCORE),
    ('at-risk', WATCHLIST_MAX_SCORE + 1, MAX_RISK_SCORE),
]


def get_risk_level(score: int) -> str:
    """
    Map a risk score to its level.

    Boundaries belong to the lower level: 30 is safe, 60 is watchlist.

    Args:
        score: Risk score (0-100)

    Returns:
        'safe', 'watchlist' or 'at-risk'
    """
    if score <= SAFE_MAX_SCORE:
        return 'safe'
    elif score <= WATCHLIST_MAX_SCORE:
        return 'watchlist'
    else:
        return 'at-risk'


def calculate_risk_score(profile: StudentProfile) -> StudentRiskProfile:
    """
    Apply every rule in RISK_RULES to a profile.

    Each triggered rule adds its points and one RiskFlag. Rules are
    independent; none short-circuits another. A student with no assessment
    record has scores [0, 0, 0], which trips the low average rule but not
    the declining trend rule.

    Args:
        profile: Merged student profile

    Returns:
        A new StudentRiskProfile; the input is not modified
    """
    risk_flags = []
    risk_score = 0

    for rule in RISK_RULES:
        if rule.triggered(profile):
            risk_score += rule.points
            risk_flags.append(RiskFlag(
                rule=rule.name,
                points=rule.points,
                description=rule.describe(profile)
            ))

    risk_score = min(risk_score, MAX_RISK_SCORE)

    return StudentRiskProfile(
        **profile.model_dump(),
        risk_score=risk_score,
        risk_level=get_risk_level(risk_score),
        risk_flags=tuple(risk_flags)
    )


def analyze_all_students(
    attendance: List[AttendanceRecord],
    assessment: List[AssessmentRecord],
    attempts: List[AttemptsRecord]
) -> List[StudentRiskProfile]:
    """
    Merge the three sources, score every student and rank them.

    Returns:
        Risk profiles, highest risk score first. Equal scores keep the
        student ID order produced by the merge.
    """
    profiles = merge_student_data(attendance, assessment, attempts)
    risk_profiles = [calculate_risk_score(profile) for profile in profiles]

    # list.sort is stable, so ties stay in student ID order
    risk_profiles.sort(key=lambda p: p.risk_score, reverse=True)

    distribution = get_risk_distribution(risk_profiles)
    logger.info(
        "Analyzed %d students (%d at risk, %d watchlist, %d safe)",
        len(risk_profiles), distribution.at_risk, distribution.watchlist, distribution.safe
    )
    return risk_profiles


def get_risk_distribution(profiles: List[StudentRiskProfile]) -> RiskDistribution:
    """Count students in each risk level."""
    counts: Dict[str, int] = {'safe': 0, 'watchlist': 0, 'at-risk': 0}
    for profile in profiles:
        counts[profile.risk_level] += 1

    return RiskDistribution(
        safe=counts['safe'],
        watchlist=counts['watchlist'],
        at_risk=counts['at-risk']
    )


def get_risk_label(risk_level: str) -> str:
    """
    Get display label for a risk level.

    Raises:
        ValueError: If risk_level is not safe, watchlist or at-risk
    """
    if risk_level not in RISK_LABELS:
        raise ValueError(f"Unknown risk level: {risk_level}")
    return RISK_LABELS[risk_level]


def get_risk_color(risk_level: str) -> str:
    """Get color code for a risk level. Unknown levels raise ValueError."""
    if risk_level not in RISK_COLORS:
        raise ValueError(f"Unknown risk level: {risk_level}")
    return RISK_COLORS[risk_level]


def get_alert_message(at_risk_count: int) -> Optional[str]:
    """Banner text for the number of at-risk students, or None when there are none."""
    if at_risk_count <= 0:
        return None
    if at_risk_count == 1:
        return "1 student is at high risk this week"
    return f"{at_risk_count} students are at high risk this week"


def profiles_to_dataframe(profiles: List[StudentRiskProfile]) -> pd.DataFrame:
    """
    Flatten risk profiles into a table for export.

    Row order follows the input order.
    """
    columns = [
        'Student ID',
        'Attendance %',
        'Test Score 1',
        'Test Score 2',
        'Test Score 3',
        'Average Score %',
        'Attempts Used',
        'Risk Score',
        'Risk Level',
        'Risk Flags'
    ]
    rows = []
    for profile in profiles:
        score1, score2, score3 = profile.test_scores
        rows.append({
            'Student ID': profile.student_id,
            'Attendance %': round(profile.attendance, 2),
            'Test Score 1': score1,
            'Test Score 2': score2,
            'Test Score 3': score3,
            'Average Score %': round(profile.average_score, 2),
            'Attempts Used': profile.attempts_used,
            'Risk Score': profile.risk_score,
            'Risk Level': get_risk_label(profile.risk_level),
            'Risk Flags': " | ".join(flag.description for flag in profile.risk_flags)
        })

    return pd.DataFrame(rows, columns=columns)
