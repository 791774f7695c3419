"""
Admin API routes - requires authentication
"""

from fastapi import APIRouter, Depends

from app.api.routes_events import get_event_service
from app.services.event_service import EventService
from app.utils.security import verify_admin_token
from app.utils.responses import success_response

router = APIRouter()

@router.delete("/events")
def delete_all_events(
    service: EventService = Depends(get_event_service),
    token: str = Depends(verify_admin_token)
):
    """Remove every event with its categories, overlays, learners and meetings"""
    service.delete_all()
    return success_response(message="All events deleted")
