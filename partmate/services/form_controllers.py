import logging

from fastapi import status
from pydantic import ValidationError as SchemaValidationError

from partmate.core.errors import InventoryError, ValidationError
from partmate.core.identity import require_identity
from partmate.core.stock_rules import (
    apply_stock_change,
    dashboard_stats,
    filter_parts,
    parse_price,
    parse_quantity,
    parse_quantity_delta,
)
from partmate.schemas.notice import Notice
from partmate.schemas.part import DashboardStats, NewPart
from partmate.services.image_compressor import compress_image

logger = logging.getLogger(__name__)


class FormController:
    """Runs one user action at a time and turns every failure into a notice.

    The busy guard only covers a single controller instance. The HTTP routes
    build a fresh controller per request, so it matters for callers that keep
    one controller alive across actions.
    """

    def __init__(self, client):
        self.client = client
        self.loading = False

    def _run(self, generic_message, action, *, pass_message=True):
        if self.loading:
            return Notice.error("Operation already in progress", status_code=status.HTTP_409_CONFLICT)
        self.loading = True
        try:
            return action()
        except InventoryError as exc:
            logger.warning("%s: %s", generic_message, exc.message)
            message = exc.message if pass_message else generic_message
            return Notice.error(message, status_code=exc.status_code)
        except Exception as exc:
            logger.exception(generic_message)
            message = (str(exc).strip() or generic_message) if pass_message else generic_message
            return Notice.error(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        finally:
            self.loading = False


def _new_part_from_form(form) -> NewPart:
    try:
        return NewPart(
            part_id=form.get("part_id") or "",
            name=form.get("name") or "",
            quantity=parse_quantity(form.get("quantity")),
            price=parse_price(form.get("price")),
        )
    except SchemaValidationError as exc:
        errors = exc.errors()
        field = errors[0]["loc"][0] if errors and errors[0].get("loc") else "input"
        raise ValidationError("{} is required".format(str(field).replace("_", " ").capitalize())) from exc


class AddPartController(FormController):
    def __init__(self, client, *, max_image_size_mb=1.0):
        super().__init__(client)
        self.max_image_size_mb = max_image_size_mb

    def submit(self, identity, form, image=None, image_filename=None):
        def action():
            require_identity(identity)
            new_part = _new_part_from_form(form)
            compressed = None
            if image:
                compressed = compress_image(image, self.max_image_size_mb, filename=image_filename)
            part = self.client.insert(identity, new_part, compressed)
            return Notice.success("Part added successfully!", part=part, status_code=status.HTTP_201_CREATED)

        return self._run("Error adding part", action)


class _SearchingController(FormController):
    def __init__(self, client):
        super().__init__(client)
        self.search_term = ""
        self.selected_part = None

    def _on_selected(self, part):
        pass

    def select(self, part):
        self.selected_part = part
        self._on_selected(part)

    def search(self, identity, term):
        self.search_term = term

        def action():
            self.select(self.client.search_one(identity, term))
            return Notice.success("Part found", part=self.selected_part)

        notice = self._run("Part not found", action)
        if not notice.ok:
            self.selected_part = None
        return notice

    def open(self, identity, part_row_id):
        """Select a part by row id, for callers that already know which one."""

        def action():
            self.select(self.client.get_part(identity, part_row_id))
            return Notice.success("Part found", part=self.selected_part)

        notice = self._run("Part not found", action)
        if not notice.ok:
            self.selected_part = None
        return notice

    def _nothing_selected(self, what):
        return Notice.error(
            "Select a part and enter {}".format(what),
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class UpdateStockController(_SearchingController):
    def __init__(self, client):
        super().__init__(client)
        self.quantity_change = ""

    def update(self, identity, operation, raw_delta):
        if self.selected_part is None or raw_delta in (None, ""):
            return self._nothing_selected("a quantity change")
        self.quantity_change = raw_delta

        def action():
            delta = parse_quantity_delta(raw_delta)
            new_quantity = apply_stock_change(self.selected_part.quantity, delta, operation)
            part = self.client.update_quantity(identity, self.selected_part.id, new_quantity)
            self.selected_part = part
            self.quantity_change = ""
            return Notice.success(
                "Stock updated successfully! New quantity: {}".format(part.quantity),
                part=part,
            )

        return self._run("Error updating stock", action)

    def update_row(self, identity, part_row_id, operation, raw_delta):
        """Validate the change, then look the row up and apply it."""
        try:
            apply_stock_change(0, parse_quantity_delta(raw_delta), operation)
        except ValidationError as exc:
            return Notice.error(exc.message, status_code=exc.status_code)

        notice = self.open(identity, part_row_id)
        if not notice.ok:
            return notice
        return self.update(identity, operation, raw_delta)


class UpdatePriceController(_SearchingController):
    def __init__(self, client):
        super().__init__(client)
        self.new_price = ""

    def _on_selected(self, part):
        self.new_price = str(part.price)

    def update(self, identity, raw_price):
        if self.selected_part is None or raw_price in (None, ""):
            return self._nothing_selected("a new price")
        self.new_price = raw_price

        def action():
            price = parse_price(raw_price)
            part = self.client.update_price(identity, self.selected_part.id, price)
            self.selected_part = part
            return Notice.success("Price updated successfully!", part=part)

        return self._run("Error updating price", action)

    def update_row(self, identity, part_row_id, raw_price):
        try:
            parse_price(raw_price)
        except ValidationError as exc:
            return Notice.error(exc.message, status_code=exc.status_code)

        notice = self.open(identity, part_row_id)
        if not notice.ok:
            return notice
        return self.update(identity, raw_price)


class InventoryViewController(FormController):
    def __init__(self, client):
        super().__init__(client)
        self.parts = []
        self.filtered_parts = []
        self.search_term = ""

    def _refresh(self, identity):
        self.parts = self.client.list_parts(identity)
        self.filtered_parts = filter_parts(self.parts, self.search_term)

    def load(self, identity):
        def action():
            self._refresh(identity)
            return Notice.success(
                "{} items".format(len(self.filtered_parts)),
                parts=self.filtered_parts,
            )

        return self._run("Error loading inventory", action, pass_message=False)

    def filter(self, term):
        self.search_term = term or ""
        self.filtered_parts = filter_parts(self.parts, self.search_term)
        return self.filtered_parts

    def delete(self, identity, part_row_id):
        def action():
            self.client.delete(identity, part_row_id)
            self._refresh(identity)
            return Notice.success("Part deleted successfully", parts=self.filtered_parts)

        return self._run("Error deleting part", action, pass_message=False)


class DashboardController(FormController):
    def __init__(self, client):
        super().__init__(client)
        self.stats = DashboardStats()

    def load(self, identity):
        def action():
            self.stats = dashboard_stats(self.client.list_parts(identity))
            return Notice.success("Dashboard loaded", stats=self.stats)

        notice = self._run("Error loading stats", action)
        if not notice.ok:
            notice.stats = self.stats
        return notice


__all__ = [
    "AddPartController",
    "DashboardController",
    "FormController",
    "InventoryViewController",
    "UpdatePriceController",
    "UpdateStockController",
]
