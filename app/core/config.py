from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path


class Settings(BaseSettings):
    # Database - local SQLite by default, override with a Postgres URL in production
    DATABASE_URL: str = "sqlite:///./waitlist.db"

    # Waitlist storage backend: "file", "database" or "brevo"
    WAITLIST_STORAGE: str = "database"
    WAITLIST_FILE: str = "./data/whitelist.json"
    WAITLIST_SOURCE: str = "Zolar Landing Page"
    WAITLIST_LANGUAGE: str = "FR"
    BRAND_NAME: str = "Zolar"

    # Brevo (CRM contacts + transactional email)
    BREVO_API_KEY: str = ""
    BREVO_LIST_ID: int = 2
    BREVO_API_URL: str = "https://api.brevo.com/v3"

    # Confirmation email: "brevo" or "resend"
    EMAIL_PROVIDER: str = "brevo"
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "no-reply@zolar.com"
    EMAIL_SENDER_NAME: str = "Équipe Zolar"

    # Twilio (WhatsApp)
    TWILIO_SID: Optional[str] = None
    TWILIO_AUTH: Optional[str] = None
    TWILIO_WHATSAPP_FROM: Optional[str] = None
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    # App Settings
    DEBUG: bool = False
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def storage_backend(self) -> str:
        return (self.WAITLIST_STORAGE or "database").strip().lower()

    @property
    def brevo_configured(self) -> bool:
        return bool(self.BREVO_API_KEY)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_SID and self.TWILIO_AUTH and self.TWILIO_WHATSAPP_FROM)

    class Config:
        # Use absolute path to .env file
        env_file = Path(__file__).parent.parent.parent / ".env"
        env_file_encoding = 'utf-8'


settings = Settings()


def get_settings() -> Settings:
    return settings
