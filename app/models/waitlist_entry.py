import uuid
from sqlalchemy import Column, String, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.types import GUID


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"
    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=True, index=True)
    phone = Column(String(20), nullable=True, index=True)
    source = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('email', name='uq_waitlist_email'),
        UniqueConstraint('phone', name='uq_waitlist_phone'),
        CheckConstraint('email IS NOT NULL OR phone IS NOT NULL', name='ck_waitlist_contact'),
    )

    def __repr__(self):
        return f"<WaitlistEntry {self.id} email={self.email} phone={self.phone}>"
