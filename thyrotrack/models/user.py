import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, DateTime, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from thyrotrack.db.session import Base

ROLE_DOCTOR = "doctor"
ROLE_PATIENT = "patient"
ROLES = (ROLE_DOCTOR, ROLE_PATIENT)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_PATIENT)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    # records where this user is the patient
    thyroid_records: Mapped[List["ThyroidRecord"]] = relationship(
        "ThyroidRecord",
        back_populates="patient",
        foreign_keys="ThyroidRecord.patient_id",
        cascade="all, delete-orphan",
    )

    def has_role(self, role: str) -> bool:
        return self.role == role

    @property
    def is_patient(self) -> bool:
        return self.has_role(ROLE_PATIENT)
