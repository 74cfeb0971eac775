from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from app.core.deps import get_waitlist_service
from app.core.exceptions import BaseAppException, ConfigurationError
from app.schemas.waitlist import WaitlistIn, WaitlistCreated, WaitlistStatus
from app.services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/whitelist", tags=["waitlist"])  # /api/whitelist


@router.post("", response_model=WaitlistCreated)
async def join_waitlist(payload: WaitlistIn, service: WaitlistService = Depends(get_waitlist_service)):
    """Add an email and/or WhatsApp number to the waitlist.

    400 on invalid input, 409 when the email or phone is already registered.
    """
    result = await service.register(payload.email, payload.phone, payload.source)
    return WaitlistCreated(message=result.message, id=result.entry.id, services=result.services)


@router.get("", response_model=WaitlistStatus, response_model_exclude_none=True)
async def waitlist_status(service: WaitlistService = Depends(get_waitlist_service)):
    """Aggregate counts for the configured storage backend."""
    try:
        return await service.status()
    except BaseAppException as e:
        logger.error(f"❌ Error fetching waitlist stats: {e.details or e.message}")
        return JSONResponse(
            status_code=500,
            content={
                "message": service.describe(),
                "storage": service.storage.label,
                "error": e.details if isinstance(e, ConfigurationError) else "Unable to fetch list statistics",
                "status": "error",
            },
        )
