import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock, patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from partmate.backend.base import Backend
from partmate.backend.local import LocalBackend
from partmate.core.errors import BackendError, NotFound, Unauthenticated, ValidationError
from partmate.core.identity import Identity
from partmate.database.base import Base
from partmate.models.part import SparePart
from partmate.schemas.part import NewPart
from partmate.services.image_compressor import CompressedImage
from partmate.services.inventory_client import InventoryClient, build_image_path

_SECRET = "inventory-client-test-secret-0123456789"


class InventoryClientTest(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine, expire_on_commit=False)

        media = tempfile.TemporaryDirectory()
        self.addCleanup(media.cleanup)
        self.media_dir = Path(media.name)

        self.backend = LocalBackend(
            self.Session,
            self.media_dir,
            public_base_url="http://parts.test",
            token_secret=_SECRET,
        )
        self.client = InventoryClient(self.backend)
        self.identity = self.backend.identity_for("mechanic@example.com")

    def _seed(self, part_id, name, quantity=10, *, age_days=0, user_id=None):
        db = self.Session()
        try:
            row = SparePart(
                user_id=user_id or self.identity.user_id,
                part_id=part_id,
                name=name,
                quantity=quantity,
                price=Decimal("19.99"),
                created_at=datetime(2024, 6, 1, tzinfo=timezone.utc) - timedelta(days=age_days),
            )
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()

    def _row_count(self):
        db = self.Session()
        try:
            return db.execute(select(func.count()).select_from(SparePart)).scalar_one()
        finally:
            db.close()

    def test_list_parts_newest_first(self):
        self._seed("FLT-010", "Oil Filter", age_days=5)
        self._seed("BRK-001", "Brake Pad", age_days=1)
        self._seed("SPK-004", "Spark Plug", age_days=3)

        parts = self.client.list_parts(self.identity)
        self.assertEqual([p.part_id for p in parts], ["BRK-001", "SPK-004", "FLT-010"])

    def test_list_parts_only_returns_callers_rows(self):
        self._seed("BRK-001", "Brake Pad")
        self._seed("BRK-900", "Someone Else's Pad", user_id="other@example.com")

        parts = self.client.list_parts(self.identity)
        self.assertEqual([p.part_id for p in parts], ["BRK-001"])

    def test_search_one_returns_single_match(self):
        self._seed("BRK-001", "Brake Pad", age_days=2)
        self._seed("BRK-002", "Brake Disc", age_days=1)

        part = self.client.search_one(self.identity, "BRK")
        self.assertIn(part.part_id, {"BRK-001", "BRK-002"})
        # earliest created wins
        self.assertEqual(part.part_id, "BRK-001")

    def test_search_one_matches_name_case_insensitively(self):
        self._seed("FLT-010", "Oil Filter")
        self.assertEqual(self.client.search_one(self.identity, "oil fil").part_id, "FLT-010")

    def test_search_one_treats_wildcards_literally(self):
        self._seed("FLT-010", "Oil Filter")
        with self.assertRaises(NotFound):
            self.client.search_one(self.identity, "%")

    def test_search_one_not_found(self):
        self._seed("BRK-001", "Brake Pad")
        with self.assertRaises(NotFound):
            self.client.search_one(self.identity, "zzz")

    def test_insert_without_image(self):
        part = self.client.insert(
            self.identity,
            NewPart(part_id="BRK-001", name="Brake Pad", quantity=12, price=Decimal("29.99")),
        )
        self.assertEqual(part.user_id, self.identity.user_id)
        self.assertEqual(part.quantity, 12)
        self.assertEqual(part.price, Decimal("29.99"))
        self.assertIsNone(part.image_url)
        self.assertIsNotNone(part.created_at)
        self.assertEqual(self._row_count(), 1)

    def test_insert_with_image_stores_object_under_user_namespace(self):
        image = CompressedImage(data=b"jpeg-bytes", content_type="image/jpeg", filename="pad.jpg")
        part = self.client.insert(
            self.identity,
            NewPart(part_id="BRK-001", name="Brake Pad", quantity=1, price=Decimal("5")),
            image,
        )

        self.assertTrue(
            part.image_url.startswith("http://parts.test/media/part-images/mechanic%40example.com/")
        )
        self.assertTrue(part.image_url.endswith(".jpg"))
        stored = list((self.media_dir / "part-images" / self.identity.user_id).glob("*.jpg"))
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].read_bytes(), b"jpeg-bytes")

    def test_failed_upload_creates_no_row(self):
        image = CompressedImage(data=b"jpeg-bytes", content_type="image/jpeg", filename="pad.jpg")
        with patch.object(self.backend, "upload", side_effect=BackendError("Bucket not found")):
            with self.assertRaises(BackendError) as ctx:
                self.client.insert(
                    self.identity,
                    NewPart(part_id="BRK-001", name="Brake Pad", quantity=1, price=Decimal("5")),
                    image,
                )
        self.assertEqual(ctx.exception.message, "Bucket not found")
        self.assertEqual(self._row_count(), 0)

    def test_update_quantity_and_price(self):
        row_id = self._seed("BRK-001", "Brake Pad", quantity=3)

        part = self.client.update_quantity(self.identity, row_id, 13)
        self.assertEqual(part.quantity, 13)

        part = self.client.update_price(self.identity, row_id, Decimal("42.5"))
        self.assertEqual(part.price, Decimal("42.50"))
        self.assertEqual(self.client.get_part(self.identity, row_id).quantity, 13)

    def test_update_quantity_rejects_negative(self):
        row_id = self._seed("BRK-001", "Brake Pad", quantity=3)
        with self.assertRaises(ValidationError):
            self.client.update_quantity(self.identity, row_id, -1)
        self.assertEqual(self.client.get_part(self.identity, row_id).quantity, 3)

    def test_update_missing_row_is_not_found(self):
        with self.assertRaises(NotFound):
            self.client.update_price(self.identity, "missing", Decimal("1"))

    def test_delete_keeps_stored_image(self):
        image = CompressedImage(data=b"jpeg-bytes", content_type="image/jpeg", filename="pad.jpg")
        part = self.client.insert(
            self.identity,
            NewPart(part_id="BRK-001", name="Brake Pad", quantity=1, price=Decimal("5")),
            image,
        )

        self.client.delete(self.identity, part.id)

        self.assertEqual(self.client.list_parts(self.identity), [])
        stored = list((self.media_dir / "part-images").rglob("*.jpg"))
        self.assertEqual(len(stored), 1)

    def test_forged_token_is_rejected(self):
        forged = Identity(user_id=self.identity.user_id, access_token="not-a-jwt")
        with self.assertRaises(Unauthenticated):
            self.client.list_parts(forged)


class InventoryClientContractTest(unittest.TestCase):
    def setUp(self):
        self.backend = Mock(spec=Backend)
        self.client = InventoryClient(self.backend)
        self.identity = Identity(user_id="u1", access_token="token")

    def test_missing_identity_fails_before_backend_call(self):
        with self.assertRaises(Unauthenticated):
            self.client.list_parts(None)
        with self.assertRaises(Unauthenticated):
            self.client.update_quantity(None, "row", 1)
        self.backend.select.assert_not_called()
        self.backend.update.assert_not_called()

    def test_malformed_row_is_backend_error(self):
        self.backend.select.return_value = [{"id": "row-1", "part_id": "BRK-001"}]
        with self.assertRaises(BackendError):
            self.client.list_parts(self.identity)

    def test_negative_quantity_row_is_backend_error(self):
        self.backend.select.return_value = [
            {
                "id": "row-1",
                "part_id": "BRK-001",
                "name": "Brake Pad",
                "quantity": -4,
                "price": 1,
                "created_at": "2024-06-01T10:00:00+00:00",
                "user_id": "u1",
            }
        ]
        with self.assertRaises(BackendError):
            self.client.list_parts(self.identity)

    def test_search_asks_backend_for_one_row_across_both_columns(self):
        self.backend.select.return_value = []
        with self.assertRaises(NotFound):
            self.client.search_one(self.identity, "BRK")
        _, kwargs = self.backend.select.call_args
        self.assertEqual(kwargs["search"], "BRK")
        self.assertEqual(tuple(kwargs["search_columns"]), ("part_id", "name"))
        self.assertEqual(kwargs["limit"], 1)

    def test_image_path_is_namespaced_by_user_and_time(self):
        self.assertEqual(build_image_path("u1", "jpg", now_ms=1700000000000), "u1/1700000000000.jpg")


if __name__ == "__main__":
    unittest.main()
