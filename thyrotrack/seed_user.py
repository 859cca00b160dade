# thyrotrack/seed_user.py
import os
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

from thyrotrack.db.session import SessionLocal  # noqa: E402
from thyrotrack.models.user import User, ROLE_DOCTOR, ROLE_PATIENT  # noqa: E402
from thyrotrack.auth.deps import hash_password  # noqa: E402


def seed(db, email: str, password: str, name: str, role: str) -> User:
    exists = db.query(User).filter(User.email == email).first()
    if exists:
        print(f"User already exists: {email} (id={exists.id}, role={exists.role})")
        return exists

    user = User(email=email, hashed_password=hash_password(password), name=name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Seeded {role}: {email} (id={user.id})")
    return user


def main():
    password = os.getenv("DEMO_USER_PASSWORD", "demo123")
    doctor_email = os.getenv("DEMO_DOCTOR_EMAIL", "doctor@example.com").lower()
    patient_email = os.getenv("DEMO_PATIENT_EMAIL", "patient@example.com").lower()

    if not password:
        raise SystemExit("Set DEMO_USER_PASSWORD before seeding")

    with SessionLocal() as db:
        seed(db, doctor_email, password, "Demo Doctor", ROLE_DOCTOR)
        seed(db, patient_email, password, "Demo Patient", ROLE_PATIENT)


if __name__ == "__main__":
    main()
