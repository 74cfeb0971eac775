from typing import Optional
import asyncio
import logging
import resend
from app.core.config import settings
from app.services.brevo_service import BrevoService

logger = logging.getLogger(__name__)


def confirmation_html(brand: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8f9fa;">
        <div style="background-color: white; padding: 30px; border-radius: 10px;">
            <h1 style="color: #333; text-align: center;">Bienvenue chez {brand} ! ✨</h1>
            <p style="color: #555; font-size: 16px; line-height: 1.6;">Bonjour,</p>
            <p style="color: #555; font-size: 16px; line-height: 1.6;">
                Merci de vous être inscrit(e) à notre liste d'attente ! Vous faites désormais partie de la communauté exclusive {brand}.
            </p>
            <ul style="color: #555; font-size: 14px;">
                <li>🎯 Accès prioritaire aux nouvelles collections</li>
                <li>💎 Offres exclusives réservées aux membres</li>
                <li>📱 Notifications en avant-première sur WhatsApp</li>
            </ul>
            <p style="color: #555; font-size: 16px; line-height: 1.6;">
                Nous vous tiendrons informé(e) dès que notre prochaine collection sera disponible.
            </p>
            <p style="color: #888; font-size: 12px; text-align: center; margin-top: 30px;">Équipe {brand}</p>
        </div>
    </div>
    """


class EmailService:
    """Sends the waitlist confirmation email through Brevo or Resend."""

    def __init__(self, provider: Optional[str] = None, brevo: Optional[BrevoService] = None,
                 resend_api_key: Optional[str] = None):
        self.provider = (provider or settings.EMAIL_PROVIDER).lower()
        self.resend_api_key = resend_api_key if resend_api_key is not None else settings.RESEND_API_KEY
        self.sender_email = settings.EMAIL_FROM
        self.sender_name = settings.EMAIL_SENDER_NAME
        self.brevo = brevo
        if self.provider == "resend":
            resend.api_key = self.resend_api_key

    @property
    def configured(self) -> bool:
        if self.provider == "resend":
            return bool(self.resend_api_key)
        return self.brevo is not None

    def subject(self) -> str:
        return f"Bienvenue dans la liste d'attente {settings.BRAND_NAME} ! 🌟"

    async def send_waitlist_confirmation(self, to: str) -> bool:
        if not self.configured:
            logger.info(f"📧 Email provider '{self.provider}' not configured, skipping confirmation to {to}")
            return False

        html = confirmation_html(settings.BRAND_NAME)
        try:
            if self.provider == "resend":
                await asyncio.to_thread(resend.Emails.send, {
                    "from": f"{self.sender_name} <{self.sender_email}>",
                    "to": [to],
                    "subject": self.subject(),
                    "html": html,
                })
            else:
                await self.brevo.send_transactional_email({
                    "sender": {"email": self.sender_email, "name": self.sender_name},
                    "to": [{"email": to}],
                    "subject": self.subject(),
                    "htmlContent": html,
                })
        except Exception as e:
            logger.error(f"❌ Failed to send confirmation email to {to}: {e}")
            return False

        logger.info(f"✅ Confirmation email sent to {to}")
        return True
