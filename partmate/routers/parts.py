from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from partmate.config import get_settings
from partmate.dependencies import get_client, get_identity
from partmate.routers.common import notice_response
from partmate.schemas.part import PriceUpdateRequest, StockUpdateRequest
from partmate.services.form_controllers import (
    AddPartController,
    InventoryViewController,
    UpdatePriceController,
    UpdateStockController,
)

router = APIRouter(prefix="/parts", tags=["Parts"])


@router.get("")
def list_parts(
    q: Optional[str] = Query(None, description="Part ID or name filter"),
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    controller = InventoryViewController(client)
    notice = controller.load(identity)
    if notice.ok and q:
        notice.parts = controller.filter(q)
        notice.message = "{} items".format(len(notice.parts))
    return notice_response(notice)


@router.get("/search")
def search_part(
    term: str = Query(..., description="Part ID or name, partial match"),
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    return notice_response(UpdateStockController(client).search(identity, term))


@router.post("")
async def add_part(
    part_id: str = Form(...),
    name: str = Form(...),
    quantity: str = Form(...),
    price: str = Form(...),
    image: Optional[UploadFile] = File(None),
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    image_bytes = None
    image_filename = None
    if image is not None and image.filename:
        image_bytes = await image.read()
        image_filename = image.filename

    controller = AddPartController(client, max_image_size_mb=get_settings().IMAGE_MAX_SIZE_MB)
    form = {"part_id": part_id, "name": name, "quantity": quantity, "price": price}
    notice = await run_in_threadpool(
        controller.submit, identity, form, image_bytes, image_filename
    )
    return notice_response(notice)


@router.post("/{part_row_id}/stock")
def update_stock(
    part_row_id: str,
    payload: StockUpdateRequest,
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    controller = UpdateStockController(client)
    return notice_response(
        controller.update_row(identity, part_row_id, payload.operation, payload.delta)
    )


@router.post("/{part_row_id}/price")
def update_price(
    part_row_id: str,
    payload: PriceUpdateRequest,
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    controller = UpdatePriceController(client)
    return notice_response(controller.update_row(identity, part_row_id, payload.price))


@router.delete("/{part_row_id}")
def delete_part(
    part_row_id: str,
    client=Depends(get_client),
    identity=Depends(get_identity),
):
    return notice_response(InventoryViewController(client).delete(identity, part_row_id))


__all__ = ["router"]
