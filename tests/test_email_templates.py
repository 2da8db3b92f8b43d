"""Unit tests for email template generation."""

import pytest

from dropout_risk.email_templates import generate_email_draft, get_advisor_info
from dropout_risk.models import RiskFlag


FLAGS = [
    RiskFlag(rule='Low Attendance', points=30, description='Attendance is 60.0% (below 75% threshold)'),
    RiskFlag(rule='Multiple Attempts', points=20, description='Used 3 attempts (threshold: 2)'),
]


def test_advisor_info_from_environment(monkeypatch):
    """Advisor details come from the environment."""
    monkeypatch.setenv('ADVISOR_NAME', 'Dr. Rivera')
    monkeypatch.setenv('ADVISOR_EMAIL', 'rivera@example.edu')

    advisor = get_advisor_info()

    assert advisor == {'name': 'Dr. Rivera', 'email': 'rivera@example.edu'}


def test_at_risk_email_lists_flags():
    """At-risk drafts mention every flag description."""
    email = generate_email_draft('STU002', 'at-risk', 60.0, 38.333, 3, FLAGS)

    assert 'STU002' in email['subject']
    assert '60.0%' in email['body']
    assert '38.3%' in email['body']
    for flag in FLAGS:
        assert flag.description in email['body']


def test_watchlist_email_lists_flags():
    """Watchlist drafts mention every flag description."""
    email = generate_email_draft('STU005', 'watchlist', 60.0, 70.0, 3, FLAGS)

    assert 'Checking In' in email['subject']
    for flag in FLAGS:
        assert flag.description in email['body']


def test_safe_email():
    """Safe drafts are encouraging and carry the advisor signature."""
    email = generate_email_draft('STU001', 'safe', 95.0, 82.0, 1, [])

    assert 'Keep It Up' in email['subject']
    assert get_advisor_info()['email'] in email['body']


def test_unknown_level_raises():
    """Unknown risk levels are rejected."""
    with pytest.raises(ValueError):
        generate_email_draft('STU001', 'critical', 50.0, 50.0, 0, [])
