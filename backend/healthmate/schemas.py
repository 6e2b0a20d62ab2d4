# backend/healthmate/schemas.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

AS_PRESCRIBED = "As prescribed"
NOT_SPECIFIED = "Not specified"


class CandidateMedicine(BaseModel):
    name: str
    dosage: str = AS_PRESCRIBED
    frequency: str = AS_PRESCRIBED
    duration: str = AS_PRESCRIBED


class ExtractionResult(BaseModel):
    medicines: List[CandidateMedicine]
    doctor_name: str = NOT_SPECIFIED
    hospital_name: str = NOT_SPECIFIED
    extraction_failed: bool = False


class PrescriptionOut(BaseModel):
    id: int
    user_id: str
    doctor_name: Optional[str] = None
    hospital_name: Optional[str] = None
    date: datetime
    image_url: Optional[str] = None
    extracted_text: Optional[str] = None
    medicines: List[CandidateMedicine] = []
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicineOut(BaseModel):
    id: int
    user_id: str
    name: str
    dosage: Optional[str] = None
    frequency: str
    prescription_id: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool = True
    reminder_enabled: bool = True
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExtractResponse(BaseModel):
    success: bool = True
    extracted_text: str
    result: ExtractionResult


class UploadResponse(BaseModel):
    success: bool = True
    prescription: PrescriptionOut
    extracted_text: str
    medicines: List[CandidateMedicine]


class PrescriptionListResponse(BaseModel):
    success: bool = True
    prescriptions: List[PrescriptionOut]


class PrescriptionResponse(BaseModel):
    success: bool = True
    prescription: PrescriptionOut


class AddMedicinesResponse(BaseModel):
    success: bool = True
    message: str
    medicines: List[MedicineOut]
    added_at: Optional[datetime] = None
    count: int
