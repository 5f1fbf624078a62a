import argparse
import sys
from decimal import Decimal
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import delete, select

from partmate.backend import build_backend
from partmate.config import get_settings
from partmate.core.logging import setup_logging
from partmate.database import Base, SessionLocal, engine
from partmate.models.part import SparePart
from partmate.schemas.part import NewPart
from partmate.services.inventory_client import InventoryClient

SAMPLE_PARTS = (
    ("BRK-001", "Front Brake Pad Set", 12, Decimal("29.99")),
    ("BRK-002", "Rear Brake Disc", 3, Decimal("54.50")),
    ("FLT-010", "Oil Filter", 40, Decimal("6.75")),
    ("SPK-004", "Iridium Spark Plug", 2, Decimal("11.20")),
    ("BLT-220", "Timing Belt Kit", 6, Decimal("89.00")),
)


def parse_args():
    parser = argparse.ArgumentParser(description="Seed the local backend with sample spare parts.")
    parser.add_argument("--user", required=True, help="Owner login (user id) for the seeded rows.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the owner's existing parts before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()
    if settings.BACKEND_MODE != "local":
        raise SystemExit("Seeding only works against the local backend (BACKEND_MODE=local).")

    Base.metadata.create_all(bind=engine)
    user_id = args.user.strip().casefold()

    db = SessionLocal()
    try:
        if args.reset:
            db.execute(delete(SparePart).where(SparePart.user_id == user_id))
            db.commit()
        has_parts = db.execute(select(SparePart.id).where(SparePart.user_id == user_id).limit(1)).first()
    finally:
        db.close()

    if has_parts:
        print("Seed skipped: parts already exist for {}.".format(user_id))
        return

    backend = build_backend(settings, session_factory=SessionLocal)
    client = InventoryClient(backend, table=settings.PARTS_TABLE, bucket=settings.IMAGE_BUCKET)
    identity = backend.identity_for(user_id, email=args.user)
    for part_id, name, quantity, price in SAMPLE_PARTS:
        client.insert(identity, NewPart(part_id=part_id, name=name, quantity=quantity, price=price))
    print("Seeded {} parts for {}.".format(len(SAMPLE_PARTS), user_id))


if __name__ == "__main__":
    main()
