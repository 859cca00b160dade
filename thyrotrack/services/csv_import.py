"""Bulk import of thyroid panels from a doctor's CSV export.

Expected header: ``patientEmail,date,TSH,T3,T4``. Rows naming an unknown
patient, or whose values do not validate, are skipped and counted.
"""
from __future__ import annotations

import csv
import io
import logging
from typing import Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from thyrotrack.models.user import User
from thyrotrack.schemas.thyroid import ThyroidRecordCreate
from thyrotrack.services.thyroid_records import create_record, find_patient_by_email

logger = logging.getLogger("thyrotrack")

REQUIRED_COLUMNS = ("patientEmail", "date", "TSH", "T3", "T4")


class CsvImportError(ValueError):
    """The upload is not a readable thyroid CSV."""


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvImportError("CSV must be UTF-8 encoded") from exc


def import_thyroid_csv(db: Session, data: bytes, doctor_id: str) -> Dict[str, int]:
    reader = csv.DictReader(io.StringIO(_decode(data)))
    header = [(name or "").strip() for name in (reader.fieldnames or [])]
    missing = [col for col in REQUIRED_COLUMNS if col not in header]
    if missing:
        raise CsvImportError(f"CSV is missing columns: {', '.join(missing)}")

    patients: Dict[str, Optional[User]] = {}
    count = inserted = skipped = 0
    try:
        for line_no, raw in enumerate(reader, start=2):
            count += 1
            row = {(k or "").strip(): (v or "").strip() for k, v in raw.items() if k is not None}
            try:
                item = ThyroidRecordCreate.model_validate(row)
            except ValidationError as exc:
                skipped += 1
                logger.info({
                    "function": "import_thyroid_csv",
                    "status": "invalid_row",
                    "line": line_no,
                    "errors": exc.error_count(),
                })
                continue

            email = str(item.patient_email).lower()
            if email not in patients:
                patients[email] = find_patient_by_email(db, email)
            patient = patients[email]
            if patient is None:
                skipped += 1
                continue

            create_record(
                db,
                patient_id=patient.id,
                doctor_id=doctor_id,
                date=item.date,
                tsh=item.tsh,
                t3=item.t3,
                t4=item.t4,
                commit=False,
            )
            inserted += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info({
        "function": "import_thyroid_csv",
        "doctor_id": str(doctor_id),
        "rows": count,
        "inserted": inserted,
        "skipped": skipped,
    })
    return {"count": count, "inserted": inserted, "skipped": skipped}


__all__ = ["CsvImportError", "import_thyroid_csv", "REQUIRED_COLUMNS"]
