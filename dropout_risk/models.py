"""Data models for the Student Risk Analyzer application."""

from typing import Optional, List, Literal, Tuple
from pydantic import BaseModel, ConfigDict, Field


RiskLevel = Literal['safe', 'watchlist', 'at-risk']


class AttendanceRecord(BaseModel):
    """One row of the attendance CSV."""
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias='StudentID')
    attendance_percentage: float = Field(alias='AttendancePercentage')


class AssessmentRecord(BaseModel):
    """One row of the assessment CSV (three test scores in sitting order)."""
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias='StudentID')
    test_score_1: float = Field(alias='TestScore1')
    test_score_2: float = Field(alias='TestScore2')
    test_score_3: float = Field(alias='TestScore3')


class AttemptsRecord(BaseModel):
    """One row of the attempts CSV."""
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(alias='StudentID')
    attempts_used: int = Field(alias='AttemptsUsed')


class StudentProfile(BaseModel):
    """Merged view of one student across the three sources."""
    model_config = ConfigDict(frozen=True)

    student_id: str
    attendance: float = 0.0
    test_scores: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    average_score: float = 0.0
    attempts_used: int = 0


class RiskFlag(BaseModel):
    """A single triggered rule and its contribution to the risk score."""
    model_config = ConfigDict(frozen=True)

    rule: str
    points: int
    description: str


class StudentRiskProfile(StudentProfile):
    """Student profile with its risk score, level and explanations."""
    risk_score: int
    risk_level: RiskLevel
    risk_flags: Tuple[RiskFlag, ...] = ()


class RiskDistribution(BaseModel):
    """Student counts per risk level."""
    model_config = ConfigDict(populate_by_name=True)

    safe: int = 0
    watchlist: int = 0
    at_risk: int = Field(default=0, alias='atRisk')


class AnalysisResponse(BaseModel):
    """Response from the analyze endpoint."""
    success: bool
    message: str
    results: List[StudentRiskProfile]
    distribution: RiskDistribution
    total: int
    alert: Optional[str] = None


class RiskRuleInfo(BaseModel):
    """Public description of one scoring rule."""
    rule: str
    points: int
    condition: str


class RiskLevelBand(BaseModel):
    """Score range covered by a risk level."""
    level: RiskLevel
    label: str
    min_score: int
    max_score: int
    color: str


class RulesResponse(BaseModel):
    """Response from the rules endpoint."""
    rules: List[RiskRuleInfo]
    levels: List[RiskLevelBand]


class EmailDraftRequest(BaseModel):
    """Request for email draft generation."""
    student_id: str
    risk_level: RiskLevel
    attendance: float
    average_score: float
    attempts_used: int = 0
    risk_flags: List[RiskFlag] = Field(default_factory=list)


class EmailDraftResponse(BaseModel):
    """Email draft response."""
    subject: str
    body: str
