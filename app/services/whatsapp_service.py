from typing import Optional
import httpx
from app.core.config import settings
from app.services.waitlist_validation import format_phone_number
import logging

logger = logging.getLogger(__name__)


def confirmation_text(brand: str) -> str:
    return f"Merci d'avoir rejoint la whitelist {brand.upper()} ! Reste à l'écoute pour le drop exclusif."


def whatsapp_address(phone: str) -> str:
    phone = format_phone_number(phone)
    if not phone.startswith("+"):
        phone = "+" + phone
    return f"whatsapp:{phone}"


class WhatsAppService:
    """Sends WhatsApp confirmations through the Twilio Messages API.

    Without Twilio credentials the message is only logged, so local and
    staging environments can run the whole signup flow.
    """

    def __init__(self, account_sid: Optional[str] = None, auth_token: Optional[str] = None,
                 from_number: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.account_sid = account_sid if account_sid is not None else settings.TWILIO_SID
        self.auth_token = auth_token if auth_token is not None else settings.TWILIO_AUTH
        self.from_number = from_number if from_number is not None else settings.TWILIO_WHATSAPP_FROM
        self._client = httpx.AsyncClient(
            base_url=settings.TWILIO_API_URL,
            auth=(self.account_sid or "", self.auth_token or ""),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_confirmation(self, phone: str) -> Optional[str]:
        """Send the waitlist confirmation; returns the Twilio message SID, or None when simulated."""
        body = confirmation_text(settings.BRAND_NAME)
        to = whatsapp_address(phone)

        if not self.configured:
            logger.info(f"📱 Twilio credentials not configured, would send WhatsApp to {to}: \"{body}\"")
            return None

        sender = self.from_number if self.from_number.startswith("whatsapp:") else f"whatsapp:{self.from_number}"
        resp = await self._client.post(
            f"/Accounts/{self.account_sid}/Messages.json",
            data={"From": sender, "To": to, "Body": body},
        )
        if resp.is_error:
            logger.error(f"Twilio error status={resp.status_code} response={resp.text}")
        resp.raise_for_status()
        sid = resp.json().get("sid")
        logger.info(f"✅ WhatsApp message sent to {to} (sid={sid})")
        return sid

    async def close(self):
        await self._client.aclose()
