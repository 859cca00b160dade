# thyrotrack/schemas/thyroid.py
import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# Hormone keys are upper-case on the wire (TSH/T3/T4), lower-case in Python.
_WIRE = ConfigDict(populate_by_name=True, from_attributes=True)

# Far above any physiological reading in these units
HORMONE_MAX = 1000.0


def _hormone(name: str, description: str):
    return Field(..., alias=name, ge=0, le=HORMONE_MAX, allow_inf_nan=False, description=description)


# ---------- Input ----------
class ThyroidReading(BaseModel):
    """A validated lab draw, as accepted at the API boundary."""
    model_config = _WIRE

    date: dt.date
    tsh: float = _hormone("TSH", "TSH in µIU/mL")
    t3: float = _hormone("T3", "T3 in ng/dL")
    t4: float = _hormone("T4", "T4 in µg/dL")


class ThyroidRecordCreate(ThyroidReading):
    patient_email: EmailStr = Field(..., alias="patientEmail")


# ---------- Records ----------
class DoctorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    email: str


class ThyroidRecordOut(BaseModel):
    model_config = _WIRE

    id: int
    patient_id: str
    doctor_id: str
    date: dt.date
    tsh: float = Field(alias="TSH")
    t3: float = Field(alias="T3")
    t4: float = Field(alias="T4")
    created_at: Optional[dt.datetime] = None


class ThyroidRecordWithDoctorOut(ThyroidRecordOut):
    doctor: Optional[DoctorOut] = None


class RecordCreatedOut(BaseModel):
    message: str
    data: ThyroidRecordOut


class RecordListOut(BaseModel):
    count: int
    data: List[ThyroidRecordWithDoctorOut]


class CsvUploadOut(BaseModel):
    message: str
    count: int = Field(..., description="Data rows read from the file")
    inserted: int
    skipped: int


# ---------- Prediction ----------
class ForecastPointOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    month: str
    predicted_tsh: float = Field(alias="predictedTSH")
    tsh_ci_lower: float = Field(alias="TSH_CI_Lower")
    tsh_ci_upper: float = Field(alias="TSH_CI_Upper")
    predicted_t3: float = Field(alias="predictedT3")
    t3_ci_lower: float = Field(alias="T3_CI_Lower")
    t3_ci_upper: float = Field(alias="T3_CI_Upper")
    predicted_t4: float = Field(alias="predictedT4")
    t4_ci_lower: float = Field(alias="T4_CI_Lower")
    t4_ci_upper: float = Field(alias="T4_CI_Upper")


class AnomalyOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int
    previous_value: float = Field(alias="previousValue")
    current_value: float = Field(alias="currentValue")
    difference: float


class PredictionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Advanced AI Thyroid Prediction"
    latest_values: ThyroidRecordOut = Field(alias="latestValues")
    classification: str
    interpretation: str
    regression_predictions: List[ForecastPointOut] = Field(alias="regressionPredictions")
    anomalies: Dict[str, List[AnomalyOut]]
