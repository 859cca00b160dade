# thyrotrack/models/thyroid_record.py
import datetime as dt

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from thyrotrack.db.session import Base
from thyrotrack.utils.encryption import EncryptedFloat


class ThyroidRecord(Base):
    """One lab draw. Created by a doctor, never updated afterwards."""

    __tablename__ = "thyroid_records"

    # Integer key doubles as storage order for same-day draws
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    patient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    doctor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), index=True, nullable=False
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    tsh: Mapped[float] = mapped_column(EncryptedFloat, nullable=False)  # µIU/mL
    t3: Mapped[float] = mapped_column(EncryptedFloat, nullable=False)   # ng/dL
    t4: Mapped[float] = mapped_column(EncryptedFloat, nullable=False)   # µg/dL

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        server_onupdate=text("CURRENT_TIMESTAMP"),
    )

    patient = relationship("User", foreign_keys=[patient_id], back_populates="thyroid_records")
    doctor = relationship("User", foreign_keys=[doctor_id])
