"""Student dropout risk analyzer: merge student records and score them with explainable rules."""

from dropout_risk.merge import merge_student_data
from dropout_risk.risk import (
    analyze_all_students,
    calculate_risk_score,
    get_risk_distribution,
    get_risk_level,
)

__all__ = [
    "merge_student_data",
    "calculate_risk_score",
    "get_risk_level",
    "analyze_all_students",
    "get_risk_distribution",
]
