#!/usr/bin/env python
"""
Seed Demo Data
Creates a demo patient and caretaker, a few medications and a history of
"taken" logs so both dashboards have something to show.

Run: python scripts/seed_demo_data.py --days 30
"""

import sys
import os
import argparse
import logging
import random
import secrets
from datetime import datetime, timedelta

# Ensure project root on sys.path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from config import settings
from database import init_db, reset_db, get_db_context
import models
from models import UserRole
from services.medication_service import to_medication_record
from tools.adherence_calculator import adherence_calculator
from tools.calendar_dates import format_calendar_date, iter_days, today_in, utcnow


logging.basicConfig(level=logging.INFO, format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


PATIENT_EMAIL = "patient@medtrack.example"
CARETAKER_EMAIL = "caretaker@medtrack.example"

DEMO_MEDICATIONS = [
    {"name": "Metformin", "dosage": "500mg", "frequency": "twice daily",
     "instructions": "Take with meals"},
    {"name": "Lisinopril", "dosage": "10mg", "frequency": "once daily"},
    {"name": "Atorvastatin", "dosage": "20mg", "frequency": "once daily at bedtime"},
]


def get_or_create_user(db, email: str, display_name: str, role: UserRole) -> models.User:
    user = db.query(models.User).filter(models.User.email == email).first()
    if user:
        logger.info(f"{role.value.capitalize()} {email} already exists")
        return user

    user = models.User(
        email=email,
        display_name=display_name,
        role=role,
        api_key=secrets.token_urlsafe(settings.API_KEY_BYTES),
    )
    db.add(user)
    db.flush()
    logger.info(f"Created {role.value} {email}")
    return user


def seed_medications(db, patient: models.User, days: int) -> list:
    """Add the demo medications, created ``days`` days ago"""
    created_at = utcnow() - timedelta(days=days)
    medications = []
    for data in DEMO_MEDICATIONS:
        existing = db.query(models.Medication).filter(
            models.Medication.user_id == patient.id,
            models.Medication.name == data["name"]
        ).first()
        if existing:
            medications.append(existing)
            continue

        medication = models.Medication(
            user_id=patient.id,
            created_at=created_at,
            updated_at=created_at,
            **data
        )
        db.add(medication)
        medications.append(medication)

    db.flush()
    return medications


def seed_logs(db, patient: models.User, medications: list, days: int, take_rate: float) -> int:
    """Create one log per medication per day with probability ``take_rate``"""
    today = today_in(settings.TIMEZONE)
    start = today - timedelta(days=days)
    created = 0

    for day in iter_days(start, today):
        for medication in medications:
            if random.random() > take_rate:
                continue
            taken_at = datetime.combine(day, datetime.min.time()) + timedelta(
                hours=random.randint(7, 21),
                minutes=random.randint(0, 59)
            )
            db.add(models.MedicationLog(
                user_id=patient.id,
                medication_id=medication.id,
                date_taken=format_calendar_date(day),
                taken_at=taken_at,
                created_at=taken_at,
            ))
            created += 1

    return created


def seed_all(days: int, take_rate: float, clear_existing: bool = False):
    """Seed all demo data"""
    if clear_existing:
        logger.warning("Clearing existing data...")
        reset_db()
    else:
        init_db()

    with get_db_context() as db:
        patient = get_or_create_user(db, PATIENT_EMAIL, "Demo Patient", UserRole.PATIENT)
        caretaker = get_or_create_user(db, CARETAKER_EMAIL, "Demo Caretaker", UserRole.CARETAKER)

        if not db.query(models.CaretakerAssignment).filter(
            models.CaretakerAssignment.caretaker_id == caretaker.id,
            models.CaretakerAssignment.patient_id == patient.id
        ).first():
            db.add(models.CaretakerAssignment(caretaker_id=caretaker.id, patient_id=patient.id))

        medications = seed_medications(db, patient, days)
        log_count = seed_logs(db, patient, medications, days, take_rate)
        db.commit()

        for medication in medications:
            db.refresh(medication)
        records = [to_medication_record(m, settings.TIMEZONE) for m in medications]
        today = today_in(settings.TIMEZONE)
        report = adherence_calculator.calculate(records, today - timedelta(days=days), today)

        print("\n" + "=" * 60)
        print("Seeding Complete!")
        print("=" * 60)
        print(f"  Medications: {len(medications)}")
        print(f"  Logs created: {log_count}")
        print(f"  Adherence rate: {report.adherence_rate_percent}%")
        print(f"  Current streak: {report.current_streak_days} day(s)")
        print(f"\nPatient   {patient.email}  X-API-Key: {patient.api_key}")
        print(f"Caretaker {caretaker.email}  X-API-Key: {caretaker.api_key}")
        print(f"Patient ID: {patient.id}")


def main():
    parser = argparse.ArgumentParser(
        description="Seed the database with demo users, medications and logs"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=30,
        help="Days of history to generate (default: 30)"
    )
    parser.add_argument(
        "--take-rate",
        type=float,
        default=0.85,
        help="Probability that a dose is logged on a given day (default: 0.85)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducible history"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear existing data before seeding"
    )

    args = parser.parse_args()
    random.seed(args.seed)

    seed_all(days=args.days, take_rate=args.take_rate, clear_existing=args.clear)


if __name__ == "__main__":
    main()
