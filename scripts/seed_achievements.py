"""
Seed the built-in achievement definitions (idempotent, matched by code).

Usage:
  python scripts/seed_achievements.py
"""
import sys
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.db.session import SessionLocal
from app.services.achievement_service import seed_default_achievements


def main():
    db = SessionLocal()
    try:
        inserted = seed_default_achievements(db)
        print(f"Seeded {inserted} achievement(s).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
