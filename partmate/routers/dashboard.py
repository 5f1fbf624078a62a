from fastapi import APIRouter, Depends

from partmate.dependencies import get_client, get_identity
from partmate.routers.common import notice_response
from partmate.services.form_controllers import DashboardController

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
def dashboard_stats(client=Depends(get_client), identity=Depends(get_identity)):
    return notice_response(DashboardController(client).load(identity))
