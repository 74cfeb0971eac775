"""Storage backends for waitlist entries.

Three interchangeable backends are available, selected with the
``WAITLIST_STORAGE`` setting:

- ``file``: a JSON array on disk, handy for demos and single-process deploys
- ``database``: the ``waitlist_entries`` table through SQLAlchemy
- ``brevo``: contacts in a Brevo list, the CRM used for marketing sends

Every backend enforces "one entry per email, one entry per phone" and turns
a duplicate detected at insert time into the same ConflictError the
lookup path raises.
"""
import json
import logging
import os
import threading
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.exceptions import (
    ConfigurationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    StorageError,
)
from app.models.waitlist_entry import WaitlistEntry
from app.schemas.waitlist import WaitlistEntryRead, WaitlistStats
from app.services.brevo_service import BrevoService, is_duplicate_error

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "Cette adresse email est déjà inscrite à la liste d'attente !"
PHONE_TAKEN_MESSAGE = "Ce numéro WhatsApp est déjà inscrit à la liste d'attente !"
ALREADY_REGISTERED_MESSAGE = "Vous êtes déjà inscrit à la liste d'attente !"


def duplicate_conflict(existing: Optional[WaitlistEntryRead], email: Optional[str], phone: Optional[str]) -> ConflictError:
    """Build the conflict for a duplicate signup, naming the field that matched."""
    if existing is not None and email and existing.email == email:
        return ConflictError(EMAIL_TAKEN_MESSAGE, field="email")
    if existing is not None and phone and existing.phone == phone:
        return ConflictError(PHONE_TAKEN_MESSAGE, field="phone")
    return ConflictError(ALREADY_REGISTERED_MESSAGE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WaitlistStorage:
    key = "base"
    label = "Base"

    def check_configured(self) -> None:
        """Raise ConfigurationError when the backend cannot be used."""

    async def find_existing(self, email: Optional[str], phone: Optional[str]) -> Optional[WaitlistEntryRead]:
        raise NotImplementedError

    async def create(self, email: Optional[str], phone: Optional[str], source: Optional[str] = None) -> WaitlistEntryRead:
        raise NotImplementedError

    async def stats(self) -> WaitlistStats:
        raise NotImplementedError

    async def close(self) -> None:
        pass


# One lock per file path; writes from a single worker never interleave.
_file_locks: Dict[str, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _file_locks_guard:
        return _file_locks.setdefault(str(path.resolve()), threading.Lock())


class FileWaitlistStorage(WaitlistStorage):
    key = "file"
    label = "File Storage"

    def __init__(self, path):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def _read_entries(self) -> List[dict]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Could not read waitlist file {self.path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def _write_entries(self, entries: List[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @staticmethod
    def _to_read(record: dict) -> WaitlistEntryRead:
        return WaitlistEntryRead(
            id=record["id"],
            email=record.get("email"),
            phone=record.get("phone"),
            source=record.get("source"),
            created_at=record["createdAt"],
            updated_at=record.get("updatedAt") or record["createdAt"],
        )

    @staticmethod
    def _match(entries: List[dict], email: Optional[str], phone: Optional[str]) -> Optional[dict]:
        # Email matches win over phone matches
        if email:
            for record in entries:
                if record.get("email") == email:
                    return record
        if phone:
            for record in entries:
                if record.get("phone") == phone:
                    return record
        return None

    async def find_existing(self, email, phone):
        record = self._match(self._read_entries(), email, phone)
        return self._to_read(record) if record else None

    async def create(self, email, phone, source=None):
        with self._lock:
            entries = self._read_entries()
            existing = self._match(entries, email, phone)
            if existing:
                raise duplicate_conflict(self._to_read(existing), email, phone)

            now = _utcnow().isoformat()
            record = {
                "id": str(uuid.uuid4()),
                "email": email,
                "phone": phone,
                "source": source,
                "createdAt": now,
                "updatedAt": now,
            }
            entries.append(record)
            try:
                self._write_entries(entries)
            except OSError as e:
                raise StorageError(details=f"Could not write {self.path}: {e}") from e
        return self._to_read(record)

    async def stats(self):
        entries = self._read_entries()
        return WaitlistStats(
            total=len(entries),
            email=sum(1 for record in entries if record.get("email")),
            phone=sum(1 for record in entries if record.get("phone")),
        )


class DatabaseWaitlistStorage(WaitlistStorage):
    key = "database"
    label = "Database"

    def __init__(self, db: Session):
        self.db = db

    def _query_existing(self, email, phone) -> Optional[WaitlistEntry]:
        conditions = []
        if email:
            conditions.append(WaitlistEntry.email == email)
        if phone:
            conditions.append(WaitlistEntry.phone == phone)
        if not conditions:
            return None
        matches = self.db.query(WaitlistEntry).filter(or_(*conditions)).all()
        for entry in matches:
            if email and entry.email == email:
                return entry
        return matches[0] if matches else None

    async def find_existing(self, email, phone):
        try:
            entry = self._query_existing(email, phone)
        except SQLAlchemyError as e:
            raise DatabaseError(details=str(e)) from e
        return WaitlistEntryRead.model_validate(entry) if entry else None

    async def create(self, email, phone, source=None):
        now = _utcnow()
        entry = WaitlistEntry(email=email, phone=phone, source=source, created_at=now, updated_at=now)
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"ℹ️ Duplicate waitlist insert for email={email} phone={phone}")
            existing = self._query_existing(email, phone)
            raise duplicate_conflict(
                WaitlistEntryRead.model_validate(existing) if existing else None, email, phone
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(details=str(e)) from e
        self.db.refresh(entry)
        return WaitlistEntryRead.model_validate(entry)

    async def stats(self):
        try:
            total = self.db.query(WaitlistEntry).count()
            with_email = self.db.query(WaitlistEntry).filter(WaitlistEntry.email.isnot(None)).count()
            with_phone = self.db.query(WaitlistEntry).filter(WaitlistEntry.phone.isnot(None)).count()
        except SQLAlchemyError as e:
            raise DatabaseError(details=str(e)) from e
        return WaitlistStats(total=total, email=with_email, phone=with_phone)


def contact_attributes(phone: Optional[str], source: Optional[str], settings: Settings) -> dict:
    attributes = {
        "SOURCE": source or settings.WAITLIST_SOURCE,
        "SIGNUP_DATE": date.today().isoformat(),
        "LANGUAGE": settings.WAITLIST_LANGUAGE,
    }
    if phone:
        attributes["WHATSAPP"] = phone
        attributes["SMS"] = phone
    return attributes


def contact_payload(email: Optional[str], phone: Optional[str], source: Optional[str],
                    settings: Settings, update_enabled: bool = False) -> dict:
    payload = {
        "attributes": contact_attributes(phone, source, settings),
        "listIds": [settings.BREVO_LIST_ID],
        "updateEnabled": update_enabled,
    }
    if email:
        payload["email"] = email
    return payload


class BrevoWaitlistStorage(WaitlistStorage):
    key = "brevo"
    label = "Brevo"

    def __init__(self, settings: Settings, client: Optional[BrevoService] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> BrevoService:
        if self._client is None:
            self._client = BrevoService(api_key=self.settings.BREVO_API_KEY, base_url=self.settings.BREVO_API_URL)
        return self._client

    def check_configured(self):
        if not self.settings.BREVO_API_KEY:
            logger.error("❌ BREVO_API_KEY is not configured")
            raise ConfigurationError(details="BREVO_API_KEY not configured")

    @staticmethod
    def _to_read(contact: dict) -> WaitlistEntryRead:
        attributes = contact.get("attributes") or {}
        created = contact.get("createdAt") or _utcnow()
        return WaitlistEntryRead(
            id=str(contact.get("id")),
            email=(contact.get("email") or "").lower() or None,
            phone=attributes.get("WHATSAPP") or attributes.get("SMS"),
            source=attributes.get("SOURCE"),
            created_at=created,
            updated_at=contact.get("modifiedAt") or created,
        )

    async def find_existing(self, email, phone):
        try:
            if email:
                contact = await self.client.get_contact(email, "email_id")
                if contact:
                    return self._to_read(contact)
            if phone:
                contact = await self.client.get_contact(phone, "phone_id")
                if contact:
                    entry = self._to_read(contact)
                    # Brevo stores SMS without formatting guarantees
                    if not entry.phone:
                        entry.phone = phone
                    return entry
        except httpx.HTTPError as e:
            raise ExternalServiceError(details=f"Brevo lookup failed: {e}") from e
        return None

    async def create(self, email, phone, source=None):
        payload = contact_payload(email, phone, source, self.settings)
        try:
            result = await self.client.create_contact(payload)
        except httpx.HTTPStatusError as e:
            if is_duplicate_error(e):
                logger.info("ℹ️ Contact already exists in Brevo, refreshing list membership")
                await self._refresh_existing(email, payload)
                raise duplicate_conflict(await self.find_existing(email, phone), email, phone) from e
            raise ExternalServiceError(details=f"Brevo API Error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(details=f"Brevo API Error: {e}") from e

        logger.info("✅ Contact successfully added to Brevo")
        now = _utcnow()
        return WaitlistEntryRead(
            id=str(result.get("id") or "created"),
            email=email,
            phone=phone,
            source=payload["attributes"]["SOURCE"],
            created_at=now,
            updated_at=now,
        )

    async def _refresh_existing(self, email: Optional[str], payload: dict) -> None:
        # Best effort: the signup is reported as a duplicate either way
        if not email:
            return
        try:
            await self.client.update_contact(email, {
                "attributes": payload["attributes"],
                "listIds": payload["listIds"],
            })
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to update existing Brevo contact: {e}")

    async def stats(self):
        list_id = self.settings.BREVO_LIST_ID
        try:
            list_info = await self.client.get_list(list_id)
            total = with_email = with_phone = 0
            async for contact in self.client.iter_list_contacts(list_id):
                attributes = contact.get("attributes") or {}
                total += 1
                if contact.get("email"):
                    with_email += 1
                if attributes.get("WHATSAPP") or attributes.get("SMS"):
                    with_phone += 1
        except httpx.HTTPError as e:
            raise ExternalServiceError(details=f"Brevo list statistics failed: {e}") from e
        return WaitlistStats(
            total=max(total, int(list_info.get("totalSubscribers") or 0)),
            email=with_email,
            phone=with_phone,
            list_id=list_id,
            list_name=list_info.get("name") or f"Liste d'attente {self.settings.BRAND_NAME}",
        )

    async def close(self):
        if self._client is not None:
            await self._client.close()


STORAGE_BACKENDS = ("file", "database", "brevo")


def build_storage(settings: Settings, db: Optional[Session] = None) -> WaitlistStorage:
    backend = settings.storage_backend
    if backend not in STORAGE_BACKENDS:
        raise ConfigurationError(details=f"Unknown WAITLIST_STORAGE '{settings.WAITLIST_STORAGE}', expected one of {STORAGE_BACKENDS}")
    if backend == "file":
        return FileWaitlistStorage(settings.WAITLIST_FILE)
    if backend == "database":
        if db is None:
            raise ConfigurationError(details="Database storage selected without a session")
        return DatabaseWaitlistStorage(db)
    return BrevoWaitlistStorage(settings)
