# Import all models here for Alembic
from app.models.waitlist_entry import WaitlistEntry

__all__ = [
    "WaitlistEntry",
]
