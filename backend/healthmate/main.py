# backend/healthmate/main.py
import logging
import secrets
import time
from functools import lru_cache
from pathlib import Path
from typing import Optional
from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from healthmate.config import configure_logging, settings
from healthmate.db import make_session_factory
from healthmate.schemas import (
    AddMedicinesResponse, ExtractResponse, MedicineOut, PrescriptionListResponse,
    PrescriptionOut, PrescriptionResponse, UploadResponse,
)
from healthmate.services import extract, ocr, prescriptions

log = logging.getLogger("uvicorn.error")

configure_logging()

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_envelope(request, exc):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.detail})


@lru_cache()
def get_session_factory():
    return make_session_factory(settings.DATABASE_URL)


def get_db():
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def extraction_options() -> extract.ExtractionOptions:
    return extract.ExtractionOptions(
        min_name_length=settings.MIN_NAME_LENGTH,
        min_fallback_token_length=settings.MIN_FALLBACK_TOKEN_LENGTH,
        hospital_context_chars=settings.HOSPITAL_CONTEXT_CHARS,
        require_medicine_keyword=settings.REQUIRE_MEDICINE_KEYWORD,
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/prescriptions/extract", response_model=ExtractResponse)
async def route_extract(text: str = Form("")):
    """Run extraction over pasted prescription text without storing anything."""
    result = extract.extract_prescription(text, extraction_options())
    return ExtractResponse(extracted_text=text, result=result)


@app.post("/api/prescriptions/upload", response_model=UploadResponse, status_code=201)
def route_upload(
    prescription: UploadFile = File(None),
    diagnosis: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    user_id: str = Depends(get_user_id),
    db=Depends(get_db),
):
    if prescription is None or not prescription.filename:
        raise HTTPException(status_code=400, detail="Please upload a file")

    ext = Path(prescription.filename).suffix.lower().lstrip(".")
    if ext not in settings.ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only images (JPEG, JPG, PNG) are allowed")

    # sync handler: OCR and the DB session run in FastAPI's threadpool
    content = prescription.file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        raw_text = ocr.image_bytes_to_text(content, lang=settings.OCR_LANG, tesseract_cmd=settings.TESSERACT_CMD)
    except ocr.OcrError as e:
        log.error(f"OCR failed: {e}")
        raise HTTPException(status_code=422, detail=f"OCR failed: {e}")

    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    filename = f"prescription-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{ext}"
    (settings.UPLOAD_DIR / filename).write_bytes(content)
    image_url = f"/uploads/prescriptions/{filename}"

    result = extract.extract_prescription(raw_text, extraction_options())
    record = prescriptions.create_prescription(
        db, user_id, raw_text, result, image_url=image_url, diagnosis=diagnosis, notes=notes,
    )
    return UploadResponse(
        prescription=PrescriptionOut.model_validate(record),
        extracted_text=raw_text,
        medicines=result.medicines,
    )


@app.get("/api/prescriptions", response_model=PrescriptionListResponse)
def route_list(user_id: str = Depends(get_user_id), db=Depends(get_db)):
    records = prescriptions.list_prescriptions(db, user_id)
    return PrescriptionListResponse(prescriptions=[PrescriptionOut.model_validate(r) for r in records])


def _load(db, prescription_id: int, user_id: str):
    try:
        return prescriptions.get_prescription(db, prescription_id, user_id)
    except prescriptions.PrescriptionNotFound:
        raise HTTPException(status_code=404, detail="Prescription not found")
    except prescriptions.NotAuthorized:
        raise HTTPException(status_code=403, detail="Not authorized")


@app.get("/api/prescriptions/{prescription_id}", response_model=PrescriptionResponse)
def route_get(prescription_id: int, user_id: str = Depends(get_user_id), db=Depends(get_db)):
    record = _load(db, prescription_id, user_id)
    return PrescriptionResponse(prescription=PrescriptionOut.model_validate(record))


@app.post("/api/prescriptions/{prescription_id}/add-medicines", response_model=AddMedicinesResponse)
def route_add_medicines(prescription_id: int, user_id: str = Depends(get_user_id), db=Depends(get_db)):
    _load(db, prescription_id, user_id)
    try:
        medicines = prescriptions.add_medicines_from_prescription(db, prescription_id, user_id)
    except prescriptions.ExtractionFailed:
        raise HTTPException(
            status_code=400,
            detail="Cannot add medicines - OCR extraction failed. Please add manually.",
        )
    added_at = medicines[0].created_at if medicines else None
    return AddMedicinesResponse(
        message=f"{len(medicines)} medicine(s) added successfully",
        medicines=[MedicineOut.model_validate(m) for m in medicines],
        added_at=added_at,
        count=len(medicines),
    )
