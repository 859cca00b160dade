"""Data access for thyroid records and the users they belong to."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from thyrotrack.models.thyroid_record import ThyroidRecord
from thyrotrack.models.user import User


def find_patient_by_email(db: Session, email: str) -> Optional[User]:
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user or not user.is_patient:
        return None
    return user


def find_patient_by_id(db: Session, patient_id: str) -> Optional[User]:
    user = db.query(User).filter(User.id == str(patient_id)).first()
    if not user or not user.is_patient:
        return None
    return user


def list_patient_records(db: Session, patient_id: str) -> List[ThyroidRecord]:
    """Records for one patient, oldest draw first; same-day draws keep insertion order."""
    return (
        db.query(ThyroidRecord)
        .options(joinedload(ThyroidRecord.doctor))
        .filter(ThyroidRecord.patient_id == str(patient_id))
        .order_by(ThyroidRecord.date.asc(), ThyroidRecord.id.asc())
        .all()
    )


def create_record(
    db: Session,
    *,
    patient_id: str,
    doctor_id: str,
    date: dt.date,
    tsh: float,
    t3: float,
    t4: float,
    commit: bool = True,
) -> ThyroidRecord:
    record = ThyroidRecord(
        patient_id=str(patient_id),
        doctor_id=str(doctor_id),
        date=date,
        tsh=tsh,
        t3=t3,
        t4=t4,
    )
    db.add(record)
    if commit:
        db.commit()
        db.refresh(record)
    return record


__all__ = ["find_patient_by_email", "find_patient_by_id", "list_patient_records", "create_record"]
