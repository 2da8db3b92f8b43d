"""FastAPI main application for Student Risk Analyzer."""

import os
import logging
import traceback
from datetime import datetime
from typing import Callable, List

from fastapi import FastAPI, File, UploadFile, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

from dropout_risk.models import (
    AnalysisResponse,
    EmailDraftRequest,
    EmailDraftResponse,
    RiskLevelBand,
    RiskRuleInfo,
    RulesResponse,
    StudentRiskProfile,
)
from dropout_risk.parsers import parse_attendance_csv, parse_assessment_csv, parse_attempts_csv
from dropout_risk.risk import (
    RISK_LEVEL_BANDS,
    RISK_RULES,
    analyze_all_students,
    get_alert_message,
    get_risk_color,
    get_risk_distribution,
    get_risk_label,
    profiles_to_dataframe,
)
from dropout_risk.email_templates import generate_email_draft

# Load environment variables
load_dotenv()

logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO').upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Student Risk Analyzer", version="1.0.0")

# CORS configuration
allow_origins = os.getenv('ALLOW_ORIGINS', '*').split(',')
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def jsonable_errors(exc: RequestValidationError) -> List[dict]:
    """Validation errors without the raw input, which may hold file bytes."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler_json(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions and return JSON."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler_json(request: Request, exc: RequestValidationError):
    """Handle validation errors and return JSON."""
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and return JSON."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error_detail = str(exc)
    if os.getenv('DEBUG', 'False').lower() == 'true':
        error_detail = f"{str(exc)}\n\n{traceback.format_exc()}"

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {error_detail}",
            "type": type(exc).__name__
        }
    )


# Configuration
MAX_UPLOAD_SIZE_MB = int(os.getenv('MAX_UPLOAD_SIZE_MB', '10'))
MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_MB * 1024 * 1024

LANDING_PAGE = """<!DOCTYPE html>
<html>
<head><title>Student Risk Analyzer</title></head>
<body>
<h1>Student Risk Analyzer</h1>
<p>POST three CSV files to <code>/analyze</code> (form fields <code>attendance</code>,
<code>assessment</code>, <code>attempts</code>) to rank students by dropout risk.</p>
<h3>Expected CSV Format</h3>
<pre>attendance.csv
StudentID,AttendancePercentage
STU001,85
STU002,62</pre>
<pre>assessment.csv
StudentID,TestScore1,TestScore2,TestScore3
STU001,75,80,72
STU002,45,38,32</pre>
<pre>attempts.csv
StudentID,AttemptsUsed
STU001,1
STU002,3</pre>
<p>See <code>/rules</code> for the scoring rules and <code>/docs</code> for the API.</p>
</body>
</html>"""


async def read_csv_upload(file: UploadFile, role: str, parser: Callable) -> list:
    """
    Validate one uploaded CSV and parse it into records.

    Raises:
        HTTPException: 400 for a wrong file type or unreadable content,
            413 when the file exceeds MAX_UPLOAD_SIZE_MB
    """
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type for {role}. Please upload a CSV file (.csv)"
        )

    file_bytes = await file.read()
    if len(file_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"{role.capitalize()} file too large. Maximum size: {MAX_UPLOAD_SIZE_MB}MB"
        )

    try:
        records = parser(file_bytes)
    except ValueError as e:
        logger.warning("Rejected %s file %s: %s", role, file.filename, e)
        raise HTTPException(status_code=400, detail=f"Error reading {role} file: {e}")

    logger.debug("Parsed %d %s records from %s", len(records), role, file.filename)
    return records


async def analyze_uploads(
    attendance: UploadFile,
    assessment: UploadFile,
    attempts: UploadFile
) -> List[StudentRiskProfile]:
    """Parse the three uploads and run the risk analysis."""
    attendance_records = await read_csv_upload(attendance, "attendance", parse_attendance_csv)
    assessment_records = await read_csv_upload(assessment, "assessment", parse_assessment_csv)
    attempts_records = await read_csv_upload(attempts, "attempts", parse_attempts_csv)

    return analyze_all_students(attendance_records, assessment_records, attempts_records)


@app.get("/", response_class=HTMLResponse)
async def root():
    """Serve the landing page."""
    return HTMLResponse(content=LANDING_PAGE)


@app.get("/health")
async def health_check():
    """Health check endpoint to test server connectivity."""
    return JSONResponse(content={"status": "ok", "message": "Server is running"})


@app.get("/rules", response_model=RulesResponse)
async def get_rules():
    """List the scoring rules and the score range of each risk level."""
    return RulesResponse(
        rules=[
            RiskRuleInfo(rule=rule.name, points=rule.points, condition=rule.condition)
            for rule in RISK_RULES
        ],
        levels=[
            RiskLevelBand(
                level=level,
                label=get_risk_label(level),
                min_score=min_score,
                max_score=max_score,
                color=get_risk_color(level)
            )
            for level, min_score, max_score in RISK_LEVEL_BANDS
        ]
    )


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze(
    attendance: UploadFile = File(...),
    assessment: UploadFile = File(...),
    attempts: UploadFile = File(...)
):
    """Upload the three CSV files and return students ranked by risk."""
    results = await analyze_uploads(attendance, assessment, attempts)
    distribution = get_risk_distribution(results)

    return AnalysisResponse(
        success=True,
        message=f"Successfully analyzed {len(results)} students",
        results=results,
        distribution=distribution,
        total=len(results),
        alert=get_alert_message(distribution.at_risk)
    )


@app.post("/analyze.csv")
async def analyze_csv(
    attendance: UploadFile = File(...),
    assessment: UploadFile = File(...),
    attempts: UploadFile = File(...)
):
    """Upload the three CSV files and download the ranked results as CSV."""
    results = await analyze_uploads(attendance, assessment, attempts)
    csv_text = profiles_to_dataframe(results).to_csv(index=False)
    stamp = datetime.now().strftime('%Y-%m-%d')

    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=student_risk_results_{stamp}.csv"
        }
    )


@app.post("/email-draft", response_model=EmailDraftResponse)
async def generate_email_draft_endpoint(request: EmailDraftRequest):
    """Generate email draft for a student."""
    try:
        email = generate_email_draft(
            student_id=request.student_id,
            risk_level=request.risk_level,
            attendance=request.attendance,
            average_score=request.average_score,
            attempts_used=request.attempts_used,
            risk_flags=request.risk_flags
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return EmailDraftResponse(**email)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
