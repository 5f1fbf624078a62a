from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def notice_response(notice) -> JSONResponse:
    return JSONResponse(
        status_code=notice.status_code,
        content=jsonable_encoder(notice.model_dump(mode="json", exclude_none=True)),
    )
