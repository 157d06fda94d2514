"""
MedScope.ai - REST API Routes
Handles image upload and analysis, narrative reports, follow-up chat, and assessments.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

from fastapi import APIRouter, File, Header, HTTPException, UploadFile

from app.schemas import ChatRequest, HealthRequest, PHQ9Request, SymptomRequest, VitalsRequest
from core.errors import UnsupportedFileError

logger = logging.getLogger(__name__)
router = APIRouter()


async def read_upload(upload: Optional[UploadFile], allow_documents: bool = False) -> Tuple[bytes, bool, bool]:
    """
    Validate and read an uploaded file.

    Returns:
        (bytes, is_dicom_upload, is_document)
    """
    from config.settings import (
        DOCUMENT_EXTENSIONS, DOCUMENT_MIME_TYPES, IMAGE_EXTENSIONS,
        IMAGE_MIME_TYPES, MAX_UPLOAD_SIZE_MB,
    )

    if upload is None or not upload.filename:
        logger.error("No file uploaded")
        raise HTTPException(status_code=400, detail="No file uploaded")

    ext = Path(upload.filename).suffix.lower()
    mime = (upload.content_type or "").lower()
    logger.info(f"Received file: {upload.filename} ({mime or 'unknown type'})")

    is_dicom_upload = ext == ".dcm" or mime == "application/dicom"
    is_document = ext in DOCUMENT_EXTENSIONS or mime in DOCUMENT_MIME_TYPES
    allowed = mime in IMAGE_MIME_TYPES or ext in IMAGE_EXTENSIONS
    if not allowed and not (allow_documents and is_document):
        raise UnsupportedFileError("Please upload an image or DICOM file")

    data = await upload.read()
    if len(data) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File too large (max {MAX_UPLOAD_SIZE_MB}MB)")

    logger.info(f"Processing {mime or ext} file of size {len(data)} bytes")
    return data, is_dicom_upload, is_document and not allowed


# ─────────────────────────────────────────────────────────────────────────────
# HEALTH & ANALYSIS
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/health")
async def health_check():
    """Health check with component status."""
    from app.main import get_engine
    engine = get_engine()
    return {
        "status": "healthy",
        "engine": engine.get_status(),
    }


@router.post("/analyze-image")
async def analyze_image(image: Optional[UploadFile] = File(None)):
    """
    Score, enhance and annotate a medical image.

    - **image**: JPEG, PNG, GIF or DICOM (.dcm) file
    """
    from app.main import get_engine

    data, is_dicom_upload, _ = await read_upload(image)

    # Run the pipeline in a thread to avoid blocking the event loop
    engine = get_engine()
    result = await asyncio.to_thread(engine.analyze, data, is_dicom_upload)
    logger.info("Analysis completed successfully")
    return result


@router.post("/report")
async def generate_report(
    file: Optional[UploadFile] = File(None),
    x_api_key: Optional[str] = Header(None),
):
    """
    Generate a narrative diagnostic report and open a chat session for it.

    - **file**: medical image (JPEG, PNG, GIF, DICOM) or PDF document
    - **X-API-Key**: optional generative-model key overriding the server's
    """
    from app.chat import session_manager
    from app.main import get_engine

    data, is_dicom_upload, is_document = await read_upload(file, allow_documents=True)

    engine = get_engine()
    result = await asyncio.to_thread(
        engine.generate_report, data, is_dicom_upload, is_document, x_api_key
    )

    session_id = session_manager.create_session(context=result["report"])
    return {"session_id": session_id, **result}


# ─────────────────────────────────────────────────────────────────────────────
# FOLLOW-UP CHAT
# ─────────────────────────────────────────────────────────────────────────────

def resolve_chat_session(request: ChatRequest) -> Tuple[str, str]:
    """Pick (or open) the session for a chat request and return it with its analysis."""
    from app.chat import session_manager

    known = session_manager.exists(request.session_id)
    analysis = request.analysis or (session_manager.get_context(request.session_id) if known else None)
    if not analysis:
        raise HTTPException(
            status_code=400,
            detail="No analysis to discuss. Generate a report first or provide 'analysis'.",
        )

    if not known:
        return session_manager.create_session(context=analysis), analysis
    if request.analysis:
        session_manager.set_context(request.session_id, request.analysis)
    return request.session_id, analysis


@router.post("/chat")
async def chat_followup(request: ChatRequest, x_api_key: Optional[str] = Header(None)):
    """
    Answer a follow-up question about a report or assessment.
    """
    from app.chat import session_manager
    from core.llm_client import get_llm_client

    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question must not be empty")

    session_id, analysis = resolve_chat_session(request)
    history = session_manager.get_history(session_id)

    client = get_llm_client(x_api_key)
    answer = await asyncio.to_thread(client.answer, question, analysis, history)

    session_manager.add_user_message(session_id, question)
    session_manager.add_bot_message(session_id, answer)

    return {
        "session_id": session_id,
        "answer": answer,
        "history_length": len(session_manager.get_history(session_id)),
        "mode": "demo" if client.is_demo else "live",
    }


@router.get("/chat/{session_id}")
async def chat_history(session_id: str):
    """Return the stored messages of a chat session."""
    from app.chat import session_manager

    if not session_manager.exists(session_id):
        raise HTTPException(status_code=404, detail="Chat session not found")
    return {
        "session_id": session_id,
        "analysis": session_manager.get_context(session_id),
        "messages": session_manager.get_history(session_id),
    }


# ─────────────────────────────────────────────────────────────────────────────
# ASSESSMENTS
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/symptoms")
async def check_symptoms(request: SymptomRequest, x_api_key: Optional[str] = Header(None)):
    """Triage free-text symptoms into likely conditions and severity."""
    from core.llm_client import get_llm_client

    symptoms = request.symptoms.strip()
    if not symptoms:
        raise HTTPException(status_code=400, detail="Symptoms must not be empty")

    client = get_llm_client(x_api_key)
    analysis = await asyncio.to_thread(client.triage, symptoms)
    return {"analysis": analysis, "mode": "demo" if client.is_demo else "live"}


@router.get("/assessments/phq9")
async def phq9_questionnaire():
    """List the PHQ-9 questions and answer options."""
    from core.assessments import PHQ9_OPTIONS, PHQ9_QUESTIONS

    return {
        "questions": PHQ9_QUESTIONS,
        "options": [{"value": i, "label": label} for i, label in enumerate(PHQ9_OPTIONS)],
    }


@router.post("/assessments/phq9")
async def phq9_assessment(request: PHQ9Request):
    """Score a PHQ-9 questionnaire and open a chat session on the result."""
    from app.chat import session_manager
    from core.assessments import score_phq9

    try:
        result = score_phq9(request.answers)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session_id = session_manager.create_session(context=result.summary())
    return {
        "score": result.score,
        "severity": result.severity,
        "recommendation": result.recommendation,
        "self_harm_flag": result.self_harm_flag,
        "session_id": session_id,
    }


@router.post("/assessments/vitals")
async def vitals_assessment(request: VitalsRequest):
    """Categorize a blood-pressure reading."""
    from core.assessments import blood_pressure_category

    return {
        "systolic": request.systolic,
        "diastolic": request.diastolic,
        "heart_rate": request.heart_rate,
        "category": blood_pressure_category(request.systolic, request.diastolic),
    }


@router.post("/assessments/health")
async def health_assessment(request: HealthRequest):
    """BMI with diet and exercise guidance for a weight goal."""
    from core.assessments import health_plan

    plan = health_plan(request.height_cm, request.weight_kg, request.goal)
    return {
        "bmi": plan.bmi,
        "goal": request.goal,
        "activity_level": request.activity_level,
        "diet": plan.diet,
        "exercise": plan.exercise,
    }


# ─────────────────────────────────────────────────────────────────────────────
# FIRST AID
# ─────────────────────────────────────────────────────────────────────────────

def _first_aid_entry(topic):
    from core.assessments import EMERGENCY_NOTICE
    return {**topic, "notice": EMERGENCY_NOTICE if topic["emergency"] else None}


@router.get("/first-aid")
async def first_aid_guide():
    """List the first-aid topics with their steps."""
    from core.assessments import FIRST_AID_TOPICS

    return {"topics": [_first_aid_entry(t) for t in FIRST_AID_TOPICS]}


@router.get("/first-aid/{topic}")
async def first_aid_detail(topic: str):
    """Steps for one first-aid topic."""
    from core.assessments import first_aid_topic

    entry = first_aid_topic(topic)
    if entry is None:
        raise HTTPException(status_code=404, detail="First-aid topic not found")
    return _first_aid_entry(entry)
