import json
import logging

import pytest

from app.core.exceptions import ConflictError
from app.services.waitlist_service import WaitlistService
from app.services.waitlist_storage import DatabaseWaitlistStorage
from app.utils.audit import audit_waitlist, contact_fingerprint


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(record.getMessage()))


@pytest.fixture
def audit_lines():
    logger = logging.getLogger("audit")
    handler = _Collect()
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    yield handler.lines
    logger.removeHandler(handler)
    logger.setLevel(previous)


def test_audit_line_hashes_contacts(audit_lines):
    audit_waitlist("signup", storage="database", email="Amina@zolar.ma", phone="+212661234567", entry_id="abc")

    (line,) = audit_lines
    assert line["event"] == "waitlist.signup"
    assert line["storage"] == "database"
    assert line["email_hash"] == contact_fingerprint("amina@zolar.ma")
    assert line["phone_hash"] == contact_fingerprint("+212661234567")
    assert line["entry_id"] == "abc"
    assert "amina@zolar.ma" not in json.dumps(line).lower()


def test_unknown_event_is_refused(audit_lines):
    with pytest.raises(ValueError):
        audit_waitlist("login", storage="database", email="amina@zolar.ma")
    assert audit_lines == []


@pytest.mark.asyncio
async def test_register_writes_signup_then_duplicate(db_session, test_settings, audit_lines):
    service = WaitlistService(DatabaseWaitlistStorage(db_session), test_settings)
    await service.register("amina@zolar.ma", None)
    with pytest.raises(ConflictError):
        await service.register("amina@zolar.ma", None)

    assert [line["event"] for line in audit_lines] == ["waitlist.signup", "waitlist.duplicate"]
    assert audit_lines[1]["field"] == "email"
    assert audit_lines[0]["email_hash"] == audit_lines[1]["email_hash"]
