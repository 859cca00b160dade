# thyrotrack/routes/auth_routes.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from thyrotrack.auth.deps import get_current_user
from thyrotrack.auth.jwt import (
    create_access_token,
    create_refresh_token,
    hash_password,
    token_claims,
    verify_password,
    verify_refresh_token,
)
from thyrotrack.auth.schemas import RefreshIn, Token, UserCreate, UserLogin, UserOut
from thyrotrack.db.session import get_db
from thyrotrack.models.user import User
from thyrotrack.utils.rate_limit import LOGIN_RATE_LIMIT, limiter

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("thyrotrack")


def _issue_tokens(user: User) -> Token:
    claims = token_claims(user)
    return Token(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        user=UserOut.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a doctor or patient account and log it in."""
    email = str(payload.email).lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        hashed_password=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info({"function": "register", "user_id": str(user.id), "role": user.role})
    return _issue_tokens(user)


@router.post("/login", response_model=Token)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(request: Request, payload: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == str(payload.email).lower()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _issue_tokens(user)


@router.post("/refresh", response_model=Token)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    data = verify_refresh_token(payload.refresh_token)
    if not data or not data.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.query(User).filter(User.id == str(data["sub"])).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return Token(access_token=create_access_token(token_claims(user)))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
