#!/usr/bin/env python3
# scripts/seed_demo_data.py
"""
MediTrack demo data seeder.

- Creates the staff logins (idempotent):
  - admin / Admin@12345 (admin)
  - pharmacist / Demo@12345 (pharmacist)
- Adds a small demo inventory. Drugs whose code is already active are skipped,
  so the script can be re-run safely.

Run:
  python -m scripts.seed_demo_data
  python -m scripts.seed_demo_data --users-only
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

# Allow "python -m scripts.seed_demo_data" from repo root
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from meditrack.core.database import SessionLocal  # noqa: E402
from meditrack.models.drug import Drug  # noqa: E402
from meditrack.models.user import RoleName  # noqa: E402
from meditrack.schemas.drug import DrugCreate  # noqa: E402
from meditrack.services.batch_service import batch_create  # noqa: E402
from meditrack.services.user_service import ensure_user  # noqa: E402

logger = logging.getLogger("seed_demo_data")

DEMO_USERS = [
    ("admin", "Admin@12345", "Store Admin", RoleName.ADMIN),
    ("pharmacist", "Demo@12345", "Demo Pharmacist", RoleName.PHARMACIST),
]

# code, name, category, manufacturer, price, stock, threshold, months to expiry, description
DEMO_DRUGS = [
    ("D001", "Paracetamol 500mg", "Analgesic", "Cipla", "2.50", 240, 50, 18, "Pain and fever relief"),
    ("D002", "Amoxicillin 250mg", "Antibiotic", "Sun Pharma", "6.75", 80, 30, 12, "Broad-spectrum antibiotic"),
    ("D003", "Cetirizine 10mg", "Antihistamine", "Dr. Reddy's", "1.80", 12, 20, 24, "Allergy relief"),
    ("D004", "Metformin 500mg", "Antidiabetic", "Lupin", "3.20", 150, 40, 2, "Type 2 diabetes"),
    ("D005", "Omeprazole 20mg", "Antacid", "Cipla", "4.10", 5, 15, 9, "Acid reflux"),
    ("D006", "Ibuprofen 400mg", "Analgesic", "Abbott", "3.60", 64, 25, 1, "Anti-inflammatory"),
]


def _demo_payloads(today: date) -> list[DrugCreate]:
    return [
        DrugCreate(
            code=code,
            name=name,
            category=category,
            manufacturer=manufacturer,
            price=Decimal(price),
            stock=stock,
            min_stock_threshold=threshold,
            expiry_date=today + timedelta(days=30 * months),
            description=description,
        )
        for code, name, category, manufacturer, price, stock, threshold, months, description in DEMO_DRUGS
    ]


def seed(users_only: bool = False) -> None:
    db = SessionLocal()
    try:
        users = [
            ensure_user(db, username=username, password=password, name=name, role=role)
            for username, password, name, role in DEMO_USERS
        ]
        logger.info("Staff ready: %s", ", ".join(u.username for u in users))

        if users_only:
            return

        existing = {
            code
            for (code,) in db.query(Drug.code).filter(Drug.is_deleted.is_(False)).all()
        }
        payloads = [p for p in _demo_payloads(date.today()) if p.code not in existing]
        if not payloads:
            logger.info("Demo inventory already present; nothing to add.")
            return

        outcome = batch_create(db, payloads=payloads, actor=users[0])
        logger.info("Demo drugs created=%s failed=%s", outcome.created, len(outcome.errors))
    finally:
        db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed MediTrack demo data.")
    parser.add_argument("--users-only", action="store_true", help="Only create the staff logins")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        seed(users_only=args.users_only)
    except SQLAlchemyError as e:
        logger.error("Seed failed: %s", e, exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
