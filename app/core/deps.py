from fastapi import Depends
from sqlalchemy.orm import Session
from typing import AsyncIterator
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.services.brevo_service import BrevoService
from app.services.email_service import EmailService
from app.services.waitlist_service import WaitlistService
from app.services.waitlist_storage import WaitlistStorage, BrevoWaitlistStorage, build_storage
from app.services.whatsapp_service import WhatsAppService


def get_waitlist_storage(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db)
) -> WaitlistStorage:
    """Storage backend selected by WAITLIST_STORAGE"""
    return build_storage(settings, db)


async def get_waitlist_service(
    settings: Settings = Depends(get_settings),
    storage: WaitlistStorage = Depends(get_waitlist_storage)
) -> AsyncIterator[WaitlistService]:
    """Waitlist service wired with whichever notifiers are configured"""
    crm = None
    if settings.brevo_configured:
        if isinstance(storage, BrevoWaitlistStorage):
            crm = storage.client
        else:
            crm = BrevoService(api_key=settings.BREVO_API_KEY, base_url=settings.BREVO_API_URL)

    service = WaitlistService(
        storage,
        settings,
        crm=None if isinstance(storage, BrevoWaitlistStorage) else crm,
        email_service=EmailService(provider=settings.EMAIL_PROVIDER, brevo=crm, resend_api_key=settings.RESEND_API_KEY),
        whatsapp_service=WhatsAppService(
            account_sid=settings.TWILIO_SID or "",
            auth_token=settings.TWILIO_AUTH or "",
            from_number=settings.TWILIO_WHATSAPP_FROM or "",
        ),
    )
    try:
        yield service
    finally:
        await service.close()
