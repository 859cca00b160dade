from fastapi import APIRouter, Depends

from thyrotrack.auth.deps import doctor_only, patient_only
from thyrotrack.auth.schemas import UserOut
from thyrotrack.models.user import User

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/doctor/dashboard")
def doctor_dashboard(user: User = Depends(doctor_only)):
    return {
        "message": "Welcome Doctor! Secure dashboard accessed.",
        "user": UserOut.model_validate(user).model_dump(),
    }


@router.get("/patient/dashboard")
def patient_dashboard(user: User = Depends(patient_only)):
    return {
        "message": "Welcome Patient! Secure dashboard accessed.",
        "user": UserOut.model_validate(user).model_dump(),
    }
