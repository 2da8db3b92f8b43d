"""API tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient

from dropout_risk.main import app


ATTENDANCE_CSV = b"StudentID,AttendancePercentage\nSTU001,85\nSTU002,62\nSTU003,91\nSTU004,90\n"
ASSESSMENT_CSV = b"StudentID,TestScore1,TestScore2,TestScore3\nSTU001,75,80,72\nSTU002,45,38,32\nSTU003,88,92,95\n"
ATTEMPTS_CSV = b"StudentID,AttemptsUsed\nSTU001,1\nSTU002,3\nSTU003,1\n"


@pytest.fixture
def client():
    return TestClient(app)


def upload_files(attendance=ATTENDANCE_CSV, assessment=ASSESSMENT_CSV, attempts=ATTEMPTS_CSV, attendance_name='attendance.csv'):
    return {
        'attendance': (attendance_name, attendance, 'text/csv'),
        'assessment': ('assessment.csv', assessment, 'text/csv'),
        'attempts': ('attempts.csv', attempts, 'text/csv'),
    }


def test_health(client):
    """Health endpoint responds."""
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


def test_root_page(client):
    """Landing page describes the CSV formats."""
    response = client.get('/')

    assert response.status_code == 200
    assert 'StudentID,AttendancePercentage' in response.text


def test_rules(client):
    """Rules endpoint lists the four rules and three levels."""
    response = client.get('/rules')
    data = response.json()

    assert response.status_code == 200
    assert [r['rule'] for r in data['rules']] == [
        'Low Attendance', 'Low Test Average', 'Declining Trend', 'Multiple Attempts'
    ]
    assert [(b['level'], b['min_score'], b['max_score']) for b in data['levels']] == [
        ('safe', 0, 30), ('watchlist', 31, 60), ('at-risk', 61, 100)
    ]


def test_analyze(client):
    """Uploading three CSVs returns ranked results and counts."""
    response = client.post('/analyze', files=upload_files())
    data = response.json()

    assert response.status_code == 200
    assert data['success'] is True
    assert data['total'] == 4

    ids = [r['student_id'] for r in data['results']]
    scores = [r['risk_score'] for r in data['results']]
    assert ids[0] == 'STU002'
    assert scores == sorted(scores, reverse=True)

    top = data['results'][0]
    assert top['risk_level'] == 'at-risk'
    assert len(top['risk_flags']) == 4

    # STU004 has only attendance: low average (30) -> safe
    stu004 = next(r for r in data['results'] if r['student_id'] == 'STU004')
    assert stu004['test_scores'] == [0.0, 0.0, 0.0]
    assert stu004['risk_score'] == 30
    assert stu004['risk_level'] == 'safe'

    assert data['distribution'] == {'safe': 3, 'watchlist': 0, 'atRisk': 1}
    assert data['alert'] == '1 student is at high risk this week'


def test_analyze_no_alert_when_nobody_at_risk(client):
    """No alert text when no student is at risk."""
    files = upload_files(
        attendance=b"StudentID,AttendancePercentage\nSTU001,95\n",
        assessment=b"StudentID,TestScore1,TestScore2,TestScore3\nSTU001,80,85,90\n",
        attempts=b"StudentID,AttemptsUsed\nSTU001,1\n"
    )

    data = client.post('/analyze', files=files).json()

    assert data['alert'] is None
    assert data['distribution']['safe'] == 1


def test_analyze_rejects_non_csv(client):
    """Non-CSV file names are rejected."""
    response = client.post('/analyze', files=upload_files(attendance_name='attendance.xlsx'))

    assert response.status_code == 400
    assert 'attendance' in response.json()['detail']


def test_analyze_rejects_missing_columns(client):
    """A CSV without the required columns gives a 400."""
    response = client.post('/analyze', files=upload_files(attempts=b"StudentID,Tries\nSTU001,1\n"))

    assert response.status_code == 400
    assert 'attempts' in response.json()['detail']
    assert 'AttemptsUsed' in response.json()['detail']


def test_analyze_requires_all_files(client):
    """Missing form fields are a validation error."""
    files = upload_files()
    del files['attempts']

    response = client.post('/analyze', files=files)

    assert response.status_code == 422


def test_analyze_csv_export(client):
    """CSV export has a header and one row per student, highest risk first."""
    response = client.post('/analyze.csv', files=upload_files())

    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/csv')
    assert 'attachment' in response.headers['content-disposition']

    lines = response.text.strip().splitlines()
    assert lines[0].startswith('Student ID,Attendance %')
    assert len(lines) == 5
    assert lines[1].startswith('STU002,')


def test_email_draft(client):
    """Email draft endpoint returns subject and body."""
    payload = {
        'student_id': 'STU002',
        'risk_level': 'at-risk',
        'attendance': 62.0,
        'average_score': 38.3,
        'attempts_used': 3,
        'risk_flags': [
            {'rule': 'Low Attendance', 'points': 30, 'description': 'Attendance is 62.0% (below 75% threshold)'}
        ]
    }

    response = client.post('/email-draft', json=payload)
    data = response.json()

    assert response.status_code == 200
    assert 'STU002' in data['subject']
    assert 'Attendance is 62.0% (below 75% threshold)' in data['body']


def test_email_draft_rejects_unknown_level(client):
    """Risk level must be one of the three known levels."""
    payload = {'student_id': 'STU002', 'risk_level': 'critical', 'attendance': 62.0, 'average_score': 38.3}

    response = client.post('/email-draft', json=payload)

    assert response.status_code == 422
