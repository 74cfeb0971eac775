from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


class WaitlistIn(BaseModel):
    email: Optional[str] = Field(None, max_length=254, description="Email address")
    phone: Optional[str] = Field(None, max_length=20, description="Moroccan mobile number (0XXXXXXXXX or +212XXXXXXXXX)")
    source: Optional[str] = Field(None, max_length=100, description="Where the signup came from")

    @field_validator("email", "phone", "source", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        # Length limits apply to the trimmed value
        return v.strip() if isinstance(v, str) else v


class WaitlistEntryRead(BaseModel):
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return str(v) if v is not None else v

    class Config:
        from_attributes = True


class SignupServices(BaseModel):
    crm: str
    email: str
    whatsapp: str


class WaitlistCreated(BaseModel):
    message: str
    id: str
    services: SignupServices


class WaitlistStats(BaseModel):
    total: int = 0
    email: int = 0
    phone: int = 0
    list_id: Optional[int] = Field(None, alias="listId")
    list_name: Optional[str] = Field(None, alias="listName")

    class Config:
        populate_by_name = True


class WaitlistStatus(BaseModel):
    message: str
    storage: str
    stats: WaitlistStats
    status: str = "active"
    last_updated: datetime = Field(..., alias="lastUpdated")

    class Config:
        populate_by_name = True
