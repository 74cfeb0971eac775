import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

_logger = logging.getLogger("audit")

WAITLIST_EVENTS = ("signup", "duplicate")


def contact_fingerprint(value: Optional[str]) -> Optional[str]:
    """Short stable hash of an email or phone; raw contacts never reach the audit log."""
    if not value:
        return None
    return hashlib.sha256(value.lower().encode()).hexdigest()[:12]


def audit_waitlist(event: str, *, storage: str, email: Optional[str] = None,
                   phone: Optional[str] = None, **fields: Any) -> None:
    """One JSON line per waitlist signup attempt, keyed as ``waitlist.<event>``."""
    if event not in WAITLIST_EVENTS:
        raise ValueError(f"Unknown waitlist audit event '{event}'")
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": f"waitlist.{event}",
        "storage": storage,
        "email_hash": contact_fingerprint(email),
        "phone_hash": contact_fingerprint(phone),
        **fields,
    }
    _logger.info(json.dumps(payload, ensure_ascii=False, default=str))
