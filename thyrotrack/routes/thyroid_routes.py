# thyrotrack/routes/thyroid_routes.py
import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from thyrotrack.auth.deps import doctor_only, patient_only
from thyrotrack.db.session import get_db
from thyrotrack.models.user import User
from thyrotrack.schemas.thyroid import (
    CsvUploadOut,
    PredictionOut,
    RecordCreatedOut,
    RecordListOut,
    ThyroidRecordCreate,
)
from thyrotrack.services import thyroid_analysis
from thyrotrack.services.csv_import import CsvImportError, import_thyroid_csv
from thyrotrack.services.thyroid_records import (
    create_record,
    find_patient_by_email,
    find_patient_by_id,
    list_patient_records,
)
from thyrotrack.utils.rate_limit import UPLOAD_RATE_LIMIT, limiter

router = APIRouter(prefix="/api/thyroid", tags=["thyroid"])
logger = logging.getLogger("thyrotrack")

MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))
CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel", "text/plain"}


@router.post("/add", response_model=RecordCreatedOut, status_code=status.HTTP_201_CREATED)
def add_record(
    payload: ThyroidRecordCreate,
    db: Session = Depends(get_db),
    doctor: User = Depends(doctor_only),
):
    patient = find_patient_by_email(db, str(payload.patient_email))
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    record = create_record(
        db,
        patient_id=patient.id,
        doctor_id=doctor.id,
        date=payload.date,
        tsh=payload.tsh,
        t3=payload.t3,
        t4=payload.t4,
    )
    logger.info({
        "function": "add_record",
        "record_id": record.id,
        "patient_id": str(patient.id),
        "doctor_id": str(doctor.id),
    })
    return {"message": "Record added successfully", "data": record}


@router.get("/my-records", response_model=RecordListOut)
def my_records(
    db: Session = Depends(get_db),
    patient: User = Depends(patient_only),
):
    records = list_patient_records(db, patient.id)
    return {"count": len(records), "data": records}


@router.post("/upload-csv", response_model=CsvUploadOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_RATE_LIMIT)
async def upload_csv(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    doctor: User = Depends(doctor_only),
):
    # Read into memory; never write to disk
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > MAX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File size exceeds the {MAX_UPLOAD_MB}MB limit")

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    is_csv_name = (file.filename or "").lower().endswith(".csv")
    if content_type not in CSV_CONTENT_TYPES and not is_csv_name:
        raise HTTPException(status_code=415, detail=f"Unsupported file type: {content_type or 'unknown'}")

    try:
        summary = import_thyroid_csv(db, data, doctor.id)
    except CsvImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {"message": "CSV uploaded successfully", **summary}


def _prediction_for(db: Session, patient: User) -> PredictionOut:
    series = list_patient_records(db, patient.id)
    try:
        result = thyroid_analysis.predict(series)
    except thyroid_analysis.InsufficientDataError as exc:
        logger.info({
            "function": "predict",
            "status": "insufficient_data",
            "patient_id": str(patient.id),
            "records": exc.count,
        })
        raise HTTPException(status_code=400, detail=str(exc))
    except thyroid_analysis.DegenerateRegressionError as exc:
        logger.warning({
            "function": "predict",
            "status": "degenerate_regression",
            "patient_id": str(patient.id),
            "hormone": exc.hormone,
        })
        raise HTTPException(status_code=422, detail=str(exc))

    logger.info({
        "function": "predict",
        "patient_id": str(patient.id),
        "records": len(series),
        "classification": result["classification"],
    })
    return PredictionOut.model_validate(result, from_attributes=True)


@router.get("/predict", response_model=PredictionOut)
def predict(
    db: Session = Depends(get_db),
    patient: User = Depends(patient_only),
):
    """Trend forecast, confidence bands and anomalies for the caller's own records."""
    return _prediction_for(db, patient)


@router.get("/patients/{patient_id}/predict", response_model=PredictionOut)
def predict_for_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    doctor: User = Depends(doctor_only),
):
    patient = find_patient_by_id(db, patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return _prediction_for(db, patient)
