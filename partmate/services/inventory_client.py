import logging
import time
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError as SchemaValidationError

from partmate.core.errors import BackendError, NotFound, ValidationError
from partmate.core.identity import require_identity
from partmate.schemas.part import Part

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = ("part_id", "name")


def build_image_path(user_id, extension, *, now_ms=None):
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return "{}/{}.{}".format(user_id, now_ms, extension)


class InventoryClient:
    """CRUD and search over the spare-parts table and its image bucket.

    Every call takes the caller's identity explicitly; nothing is cached
    between calls.
    """

    def __init__(self, backend, *, table="spare_parts", bucket="part-images"):
        self.backend = backend
        self.table = table
        self.bucket = bucket

    @staticmethod
    def _to_part(row) -> Part:
        try:
            return Part.model_validate(row)
        except SchemaValidationError as exc:
            logger.warning("Rejected malformed part row: %s", exc)
            raise BackendError("Malformed part row returned by backend") from exc

    def list_parts(self, identity) -> list[Part]:
        require_identity(identity)
        rows = self.backend.select(identity, self.table, order_by="created_at", descending=True)
        return [self._to_part(row) for row in rows]

    def search_one(self, identity, term) -> Part:
        # Several rows may match; the earliest created one wins.
        require_identity(identity)
        rows = self.backend.select(
            identity,
            self.table,
            search=term,
            search_columns=SEARCH_COLUMNS,
            order_by="created_at",
            limit=1,
        )
        if not rows:
            raise NotFound("Part not found")
        return self._to_part(rows[0])

    def get_part(self, identity, part_row_id) -> Part:
        require_identity(identity)
        rows = self.backend.select(identity, self.table, eq={"id": part_row_id}, limit=1)
        if not rows:
            raise NotFound("Part not found")
        return self._to_part(rows[0])

    def insert(self, identity, new_part, image=None) -> Part:
        require_identity(identity)

        image_url = None
        if image is not None:
            path = build_image_path(identity.user_id, image.extension)
            self.backend.upload(identity, self.bucket, path, image.data, image.content_type)
            image_url = self.backend.public_url(self.bucket, path)
            logger.info(
                "Stored part image %s/%s", self.bucket, path,
                extra={"user_id": identity.user_id, "bucket": self.bucket},
            )

        row = self.backend.insert(
            identity,
            self.table,
            {
                "part_id": new_part.part_id,
                "name": new_part.name,
                "quantity": new_part.quantity,
                "price": new_part.price,
                "image_url": image_url,
                "user_id": identity.user_id,
            },
        )
        part = self._to_part(row)
        logger.info(
            "Added part %s (%s)", part.part_id, part.id,
            extra={"user_id": identity.user_id, "part_row_id": part.id},
        )
        return part

    def update_quantity(self, identity, part_row_id, new_quantity) -> Part:
        require_identity(identity)
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity < 0:
            raise ValidationError("Quantity must be a non-negative whole number")
        row = self.backend.update(identity, self.table, part_row_id, {"quantity": new_quantity})
        return self._to_part(row)

    def update_price(self, identity, part_row_id, new_price) -> Part:
        require_identity(identity)
        message = "Price must be a non-negative amount"
        try:
            new_price = Decimal(str(new_price))
        except InvalidOperation as exc:
            raise ValidationError(message) from exc
        if not new_price.is_finite() or new_price < 0:
            raise ValidationError(message)
        row = self.backend.update(identity, self.table, part_row_id, {"price": new_price})
        return self._to_part(row)

    def delete(self, identity, part_row_id) -> None:
        # The stored image, if any, stays in the bucket.
        require_identity(identity)
        self.backend.delete(identity, self.table, part_row_id)
        logger.info(
            "Deleted part %s", part_row_id,
            extra={"user_id": identity.user_id, "part_row_id": part_row_id},
        )
