import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from courtroom import models, services
from courtroom.config import get_settings
from courtroom.db import CaseNotFound, Store

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

CASE_SEPARATOR = "\n---\n"
RAG_LIMIT = 5

app = FastAPI(title="AI Courtroom")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    app.state.store = Store(settings.database_url).open()


@app.on_event("shutdown")
def on_shutdown():
    store = getattr(app.state, "store", None)
    if store is not None:
        store.close()


def get_store(request: Request) -> Store:
    return request.app.state.store


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors())
    return JSONResponse(status_code=400, content={"detail": f"Invalid request: {fields}"})


def _judge_and_record(store: Store, case: models.Case, args: List[models.Argument]) -> dict:
    """Ask the judge about the case so far and append the verdict to its history."""
    result = services.call_judge(case, args, settings=settings)

    # the verdict belongs to the latest argument round it has seen
    round_no = args[-1].round if args else 0
    store.add_verdict(case.id, services.verdict_text(result), round_no, result["confidence"])

    return {
        "verdict": result["verdict"],
        "reasoning": result["reasoning"],
        "confidence": result["confidence"],
        "arguments": args,
    }


# Root route
@app.get("/")
def read_root():
    return {"message": "Welcome to the AI Courtroom API"}


# ---- CASE UPLOAD ----
@app.post("/api/upload")
async def upload_case(request: Request, store: Store = Depends(get_store)):
    """Create a case from pasted text; Lawyer A and B halves are split on a --- line."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        raise HTTPException(
            status_code=501,
            detail="File upload is not supported. Send the case as JSON text instead.",
        )

    try:
        body = await request.json()
    except ValueError:
        body = {}
    try:
        payload = models.UploadRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        raise HTTPException(status_code=400, detail="text must be a string")
    text = payload.text or ""

    parts = text.split(CASE_SEPARATOR)
    lawyer_a = parts[0]
    lawyer_b = parts[1] if len(parts) > 1 else ""

    try:
        case = store.create_case(lawyerA_text=lawyer_a, lawyerB_text=lawyer_b, file_text=text)
    except Exception as e:
        logger.exception("upload failed")
        raise HTTPException(status_code=500, detail=f"Error creating case: {str(e)}")
    return {"case_id": case.id, "extracted_text": text}


# ---- ARGUMENT SUBMISSION ----
@app.post("/api/argument")
def submit_argument(payload: models.ArgumentRequest, store: Store = Depends(get_store)):
    """Append an argument, then ask the judge for an updated verdict"""
    if not payload.case_id or not payload.side or not payload.text:
        raise HTTPException(status_code=400, detail="caseId, side and text required")

    try:
        case = store.get_case(payload.case_id)
        store.add_argument(case.id, payload.side, payload.text)
        args = store.list_arguments(case.id)
        return _judge_and_record(store, case, args)
    except CaseNotFound:
        raise HTTPException(status_code=404, detail="case not found")
    except Exception as e:
        logger.exception("argument submission failed case_id=%s", payload.case_id)
        raise HTTPException(status_code=500, detail=f"Error submitting argument: {str(e)}")


# ---- VERDICT ----
@app.get("/api/verdict")
def get_verdict(case_id: Optional[str] = None, store: Store = Depends(get_store)):
    """Case and argument history; verdicts are only produced by POST"""
    if not case_id:
        raise HTTPException(status_code=400, detail="case_id required")
    try:
        case = store.get_case(case_id)
        args = store.list_arguments(case.id)
    except CaseNotFound:
        raise HTTPException(status_code=404, detail="case not found")
    except Exception as e:
        logger.exception("verdict lookup failed case_id=%s", case_id)
        raise HTTPException(status_code=500, detail=f"Error fetching case: {str(e)}")
    return {"case": case, "arguments": args, "verdict": None}


@app.post("/api/verdict")
def request_verdict(payload: models.VerdictRequest, store: Store = Depends(get_store)):
    """Ask the judge for a verdict on the arguments so far"""
    if not payload.case_id:
        raise HTTPException(status_code=400, detail="caseId required")

    try:
        case = store.get_case(payload.case_id)
        args = store.list_arguments(case.id)
        return _judge_and_record(store, case, args)
    except CaseNotFound:
        raise HTTPException(status_code=404, detail="case not found")
    except Exception as e:
        logger.exception("verdict request failed case_id=%s", payload.case_id)
        raise HTTPException(status_code=500, detail=f"Error requesting verdict: {str(e)}")


# ---- CASES ----
@app.get("/api/cases")
def list_cases(store: Store = Depends(get_store)):
    """Get all cases, newest first"""
    try:
        cases = store.list_cases()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cases: {str(e)}")
    return {"cases": cases, "count": len(cases)}


@app.get("/api/cases/{case_id}")
def get_case(case_id: str, store: Store = Depends(get_store)):
    """Get a case with its arguments and current verdict"""
    try:
        case = store.get_case(case_id)
        args = store.list_arguments(case.id)
        verdict = store.latest_verdict(case.id)
    except CaseNotFound:
        raise HTTPException(status_code=404, detail="case not found")
    except Exception as e:
        logger.exception("case lookup failed case_id=%s", case_id)
        raise HTTPException(status_code=500, detail=f"Error fetching case: {str(e)}")
    return {"case": case, "arguments": args, "verdict": verdict}


# ---- DOCUMENTS (RAG) ----
@app.get("/api/rag")
def rag_search(query: Optional[str] = None, store: Store = Depends(get_store)):
    """Keyword search when a query is given, otherwise list all documents"""
    try:
        if query:
            return {"results": store.retrieve(query, RAG_LIMIT)}
        return {"docs": store.list_documents()}
    except Exception as e:
        logger.exception("rag lookup failed")
        raise HTTPException(status_code=500, detail=f"Error reading documents: {str(e)}")


@app.post("/api/rag")
def add_document(payload: models.DocumentCreate, store: Store = Depends(get_store)):
    if not payload.text:
        raise HTTPException(status_code=400, detail="text required")
    try:
        doc = store.add_document(title=payload.title or "", text=payload.text)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error storing document: {str(e)}")
    return {"doc": doc}


# ---- HEALTH CHECK ----
@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "AI Courtroom API",
        "judge": "gemini" if settings.gemini_api_key else "mock",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
