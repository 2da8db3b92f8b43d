"""Email template generation for different risk levels."""

import os
from typing import Dict, List

from dropout_risk.models import RiskFlag


def get_advisor_info() -> Dict[str, str]:
    """Get advisor name and email from environment or defaults."""
    return {
        'name': os.getenv('ADVISOR_NAME', 'Academic Advisor'),
        'email': os.getenv('ADVISOR_EMAIL', 'advisor@example.com')
    }


def _format_flags(risk_flags: List[RiskFlag]) -> str:
    return "\n".join(f"- {flag.rule}: {flag.description}" for flag in risk_flags)


def generate_email_draft(
    student_id: str,
    risk_level: str,
    attendance: float,
    average_score: float,
    attempts_used: int,
    risk_flags: List[RiskFlag]
) -> Dict[str, str]:
    """
    Generate an email draft tailored to the student's risk level.

    Raises:
        ValueError: If risk_level is not safe, watchlist or at-risk
    """
    advisor = get_advisor_info()
    attendance_str = f"{attendance:.1f}"
    average_str = f"{average_score:.1f}"

    level = risk_level.lower()
    if level == "safe":
        return _safe_email(student_id, attendance_str, average_str, advisor)
    if level == "watchlist":
        return _watchlist_email(student_id, attendance_str, average_str, attempts_used, risk_flags, advisor)
    if level == "at-risk":
        return _at_risk_email(student_id, attendance_str, average_str, attempts_used, risk_flags, advisor)
    raise ValueError(f"Unknown risk level: {risk_level}")


def _safe_email(student_id: str, attendance: str, average_score: str, advisor: Dict[str, str]) -> Dict[str, str]:
    subject = f"Great Work, Student {student_id}, Keep It Up!"
    body = f"""Hi {student_id},

You're on track this term with {attendance}% attendance and an average test score of {average_score}%.

Keep up the consistency. If you'd like, I can share study tips or ways to get involved in enrichment programs.

Great job!

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}


def _watchlist_email(
    student_id: str,
    attendance: str,
    average_score: str,
    attempts_used: int,
    risk_flags: List[RiskFlag],
    advisor: Dict[str, str]
) -> Dict[str, str]:
    subject = f"Checking In on Your Progress, Student {student_id}"
    body = f"""Hi {student_id},

I wanted to check in. Your attendance is {attendance}%, your average test score is {average_score}% and you have used {attempts_used} exam attempt(s).

A few things caught our attention:
{_format_flags(risk_flags)}

None of this is urgent yet, but a short conversation now can keep it that way. Please reply to book a time that suits you.

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}


def _at_risk_email(
    student_id: str,
    attendance: str,
    average_score: str,
    attempts_used: int,
    risk_flags: List[RiskFlag],
    advisor: Dict[str, str]
) -> Dict[str, str]:
    subject = f"Let's Work Together to Get You Back on Track, Student {student_id}"
    body = f"""Hi {student_id},

I'm reaching out about your current progress. Your attendance is {attendance}%, your average test score is {average_score}% and you have used {attempts_used} exam attempt(s).

Our early-warning review flagged the following:
{_format_flags(risk_flags)}

Please contact the Student Success Office or reply to this email as soon as possible so we can plan next steps together. Tutoring, time management support and counselling are all available to you.

You're not alone in this. We're here to help.

{advisor['name']}
{advisor['email']}"""
    return {'subject': subject, 'body': body}
