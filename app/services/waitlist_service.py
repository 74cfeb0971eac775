from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
import logging

from app.core.config import Settings
from app.schemas.waitlist import SignupServices, WaitlistEntryRead, WaitlistStatus
from app.services.brevo_service import BrevoService
from app.services.email_service import EmailService
from app.services.waitlist_storage import WaitlistStorage, contact_payload, duplicate_conflict
from app.services.waitlist_validation import normalize_submission
from app.services.whatsapp_service import WhatsAppService
from app.utils.audit import audit_waitlist

logger = logging.getLogger(__name__)

SIGNUP_SUCCESS_MESSAGE = "Merci ! Vous serez averti dès que la collection sera disponible."

NOT_PROVIDED = "Non fourni"
NOT_CONFIGURED = "Non configuré"


@dataclass
class SignupResult:
    entry: WaitlistEntryRead
    services: SignupServices
    message: str = SIGNUP_SUCCESS_MESSAGE


class WaitlistService:
    """Runs a signup: validate, deduplicate, store, then notify.

    Notifications (CRM sync, confirmation email, WhatsApp) run after the
    entry is stored and never change the outcome of the signup.
    """

    def __init__(self, storage: WaitlistStorage, settings: Settings,
                 crm: Optional[BrevoService] = None,
                 email_service: Optional[EmailService] = None,
                 whatsapp_service: Optional[WhatsAppService] = None):
        self.storage = storage
        self.settings = settings
        self.crm = crm
        self.email_service = email_service
        self.whatsapp_service = whatsapp_service

    async def register(self, email: Optional[str], phone: Optional[str], source: Optional[str] = None) -> SignupResult:
        self.storage.check_configured()
        email, phone = normalize_submission(email, phone)
        source = (source or "").strip() or self.settings.WAITLIST_SOURCE

        logger.info(f"📧 Processing waitlist request: email={email or 'None'} phone={phone or 'None'}")

        existing = await self.storage.find_existing(email, phone)
        if existing is not None:
            conflict = duplicate_conflict(existing, email, phone)
            audit_waitlist("duplicate", storage=self.storage.key, email=email, phone=phone, field=conflict.field)
            raise conflict

        entry = await self.storage.create(email, phone, source)
        logger.info(f"✅ New waitlist entry created: {entry.id}")
        audit_waitlist("signup", storage=self.storage.key, email=email, phone=phone, entry_id=entry.id)

        services = SignupServices(
            crm=await self._sync_crm(email, phone, source),
            email=await self._send_email(email),
            whatsapp=await self._send_whatsapp(phone),
        )
        return SignupResult(entry=entry, services=services)

    async def _sync_crm(self, email, phone, source) -> str:
        if self.storage.key == "brevo":
            return "Ajouté à la liste d'attente"
        if self.crm is None:
            return NOT_CONFIGURED
        try:
            await self.crm.create_contact(contact_payload(email, phone, source, self.settings, update_enabled=True))
        except Exception as e:
            logger.error(f"❌ CRM sync failed: {e}")
            return "Synchronisation échouée"
        return "Ajouté à la liste d'attente"

    async def _send_email(self, email) -> str:
        if not email:
            return NOT_PROVIDED
        if self.email_service is None:
            return NOT_CONFIGURED
        try:
            sent = await self.email_service.send_waitlist_confirmation(email)
        except Exception as e:
            logger.error(f"❌ Failed to send auto-reply email: {e}")
            sent = False
        return "Email de confirmation envoyé" if sent else "Email de confirmation non envoyé"

    async def _send_whatsapp(self, phone) -> str:
        if not phone:
            return NOT_PROVIDED
        if self.whatsapp_service is None:
            return NOT_CONFIGURED
        try:
            await self.whatsapp_service.send_confirmation(phone)
        except Exception as e:
            logger.error(f"❌ Failed to send WhatsApp message: {e}")
            return "Numéro WhatsApp enregistré (message non envoyé)"
        return "Numéro WhatsApp enregistré"

    async def status(self) -> WaitlistStatus:
        self.storage.check_configured()
        stats = await self.storage.stats()
        return WaitlistStatus(
            message=self.describe(),
            storage=self.storage.label,
            stats=stats,
            status="active",
            last_updated=datetime.now(timezone.utc),
        )

    def describe(self) -> str:
        return f"API de la liste d'attente {self.settings.BRAND_NAME} ({self.storage.label})"

    async def close(self):
        await self.storage.close()
        if self.crm is not None:
            await self.crm.close()
        if self.whatsapp_service is not None:
            await self.whatsapp_service.close()
