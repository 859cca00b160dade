"""Authentication dependencies for FastAPI routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from thyrotrack.db.session import get_db
from thyrotrack.models.user import User, ROLE_DOCTOR, ROLE_PATIENT, ROLES
from thyrotrack.auth import jwt

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated user from the Authorization bearer token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )

    payload = jwt.get_current_user_from_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )

    user = db.query(User).filter(User.id == str(payload["sub"])).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def require_role(role: str, detail: str):
    """Build a dependency that admits only users holding ``role``.

    The role comes from the stored user row, not from the token claims.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if not user.has_role(role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return _dependency


doctor_only = require_role(ROLE_DOCTOR, "Access denied. Doctors only.")
patient_only = require_role(ROLE_PATIENT, "Access denied. Patients only.")

