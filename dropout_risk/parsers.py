"""CSV file parsing and conversion to typed student records."""

import logging
from io import BytesIO
from typing import List

import pandas as pd

from dropout_risk.models import AttendanceRecord, AssessmentRecord, AttemptsRecord

logger = logging.getLogger(__name__)

STUDENT_ID_COLUMN = 'StudentID'

ATTENDANCE_COLUMNS = [STUDENT_ID_COLUMN, 'AttendancePercentage']
ASSESSMENT_COLUMNS = [STUDENT_ID_COLUMN, 'TestScore1', 'TestScore2', 'TestScore3']
ATTEMPTS_COLUMNS = [STUDENT_ID_COLUMN, 'AttemptsUsed']


def read_csv_frame(file_bytes: bytes, required_columns: List[str]) -> pd.DataFrame:
    """
    Read an uploaded CSV into a DataFrame and check its header.

    Every column is read as text so student IDs like "007" keep their
    leading zeros; numeric columns are converted by the caller. Rows
    without a student ID are dropped.

    Args:
        file_bytes: Raw file content
        required_columns: Column names that must be present

    Returns:
        DataFrame with stripped column names and stripped student IDs

    Raises:
        ValueError: If the file cannot be parsed or a required column is missing
    """
    try:
        df = pd.read_csv(
            BytesIO(file_bytes),
            dtype=str,
            skip_blank_lines=True,
            encoding='utf-8-sig'
        )
    except pd.errors.EmptyDataError:
        raise ValueError("File is empty")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValueError(f"Could not parse CSV file: {e}")

    df.columns = [str(col).strip() for col in df.columns]

    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required columns. Found: {list(df.columns)}, Required: {', '.join(required_columns)}"
        )

    df[STUDENT_ID_COLUMN] = df[STUDENT_ID_COLUMN].fillna('').str.strip()
    blank_ids = df[STUDENT_ID_COLUMN] == ''
    if blank_ids.any():
        logger.warning("Dropping %d rows without a %s", int(blank_ids.sum()), STUDENT_ID_COLUMN)
        df = df[~blank_ids]

    logger.debug("Read CSV: %d rows, columns %s", len(df), list(df.columns))
    return df.reset_index(drop=True).copy()


def coerce_numeric(series: pd.Series) -> pd.Series:
    """Convert a column to numbers. Blank or unparsable cells become 0."""
    return pd.to_numeric(series, errors='coerce').fillna(0.0)


def parse_attendance_csv(file_bytes: bytes) -> List[AttendanceRecord]:
    """Parse the attendance CSV (StudentID, AttendancePercentage)."""
    df = read_csv_frame(file_bytes, ATTENDANCE_COLUMNS)
    df['AttendancePercentage'] = coerce_numeric(df['AttendancePercentage'])

    return [
        AttendanceRecord(
            student_id=row[STUDENT_ID_COLUMN],
            attendance_percentage=float(row['AttendancePercentage'])
        )
        for _, row in df.iterrows()
    ]


def parse_assessment_csv(file_bytes: bytes) -> List[AssessmentRecord]:
    """Parse the assessment CSV (StudentID, TestScore1, TestScore2, TestScore3)."""
    df = read_csv_frame(file_bytes, ASSESSMENT_COLUMNS)
    for col in ASSESSMENT_COLUMNS[1:]:
        df[col] = coerce_numeric(df[col])

    return [
        AssessmentRecord(
            student_id=row[STUDENT_ID_COLUMN],
            test_score_1=float(row['TestScore1']),
            test_score_2=float(row['TestScore2']),
            test_score_3=float(row['TestScore3'])
        )
        for _, row in df.iterrows()
    ]


def parse_attempts_csv(file_bytes: bytes) -> List[AttemptsRecord]:
    """
    Parse the attempts CSV (StudentID, AttemptsUsed).

    Fractional attempt counts are truncated to whole numbers.
    """
    df = read_csv_frame(file_bytes, ATTEMPTS_COLUMNS)
    df['AttemptsUsed'] = coerce_numeric(df['AttemptsUsed']).astype(int)

    return [
        AttemptsRecord(
            student_id=row[STUDENT_ID_COLUMN],
            attempts_used=int(row['AttemptsUsed'])
        )
        for _, row in df.iterrows()
    ]
