from fastapi import APIRouter
from typing import Dict

from ..core.config import get_settings

router = APIRouter()


@router.get("/health")
async def get_health() -> Dict:
    """
    Lightweight liveness probe. Returns HTTP 200 when the service is reachable.
    """
    return {"description": "Service reachable.", "app": get_settings().APP_NAME}
