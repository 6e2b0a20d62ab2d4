# backend/healthmate/services/prescriptions.py
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from healthmate.db import Medicine, Prescription, utcnow
from healthmate.schemas import ExtractionResult
from healthmate.services.extract import is_extraction_failed
from healthmate.services.normalize import parse_frequency

log = logging.getLogger("prescriptions")


class PrescriptionNotFound(Exception):
    pass


class NotAuthorized(Exception):
    pass


class ExtractionFailed(Exception):
    pass


def create_prescription(db: Session, user_id: str, extracted_text: str, result: ExtractionResult,
                        image_url: Optional[str] = None, diagnosis: Optional[str] = None,
                        notes: Optional[str] = None) -> Prescription:
    record = Prescription(
        user_id=user_id,
        image_url=image_url,
        extracted_text=extracted_text,
        medicines=[m.model_dump() for m in result.medicines],
        doctor_name=result.doctor_name,
        hospital_name=result.hospital_name,
        diagnosis=diagnosis,
        notes=notes,
    )
    db.add(record)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)
    log.info("Saved prescription %s for user %s with %d medicine(s)", record.id, user_id, len(record.medicines))
    return record


def list_prescriptions(db: Session, user_id: str) -> List[Prescription]:
    return (
        db.query(Prescription)
        .filter(Prescription.user_id == user_id)
        .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        .all()
    )


def get_prescription(db: Session, prescription_id: int, user_id: str) -> Prescription:
    record = db.get(Prescription, prescription_id)
    if record is None:
        raise PrescriptionNotFound(prescription_id)
    if record.user_id != user_id:
        raise NotAuthorized(prescription_id)
    return record


def add_medicines_from_prescription(db: Session, prescription_id: int, user_id: str) -> List[Medicine]:
    """
    Copy every extracted medicine into the user's medicine list in one insert,
    all sharing the same timestamp. A failed extraction is refused.
    """
    prescription = get_prescription(db, prescription_id, user_id)
    if is_extraction_failed(prescription.medicines or []):
        raise ExtractionFailed(prescription_id)

    now = utcnow()
    note = f"Added from prescription on {now:%Y-%m-%d} at {now:%H:%M:%S}"
    medicines = [
        Medicine(
            user_id=user_id,
            name=med["name"],
            dosage=med.get("dosage"),
            frequency=parse_frequency(med.get("frequency")),
            prescription_id=prescription.id,
            notes=note,
            created_at=now,
            updated_at=now,
        )
        for med in prescription.medicines or []
    ]
    db.add_all(medicines)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    for m in medicines:
        db.refresh(m)
    log.info("Added %d medicine(s) from prescription %s", len(medicines), prescription_id)
    return medicines
