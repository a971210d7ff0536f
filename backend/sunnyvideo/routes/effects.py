"""
GET /api/effects: the filters and emoji overlays the recorder offers.

Public and static, so it is cacheable.
"""

from fastapi import APIRouter, Response

from sunnyvideo.config import settings
from sunnyvideo.effects import catalog
from sunnyvideo.schemas.common import EffectsResponse

router = APIRouter(prefix="/api", tags=["Effects"])


@router.get(
    "/effects",
    response_model=EffectsResponse,
    summary="Video filters and emoji overlays",
)
async def list_effects(response: Response) -> EffectsResponse:
    response.headers["Cache-Control"] = "public, max-age=3600"
    return EffectsResponse(
        **catalog(),
        max_recording_seconds=settings.max_recording_seconds,
        message_ttl_hours=settings.message_ttl_hours,
    )
