import json

import pytest

from app.core.exceptions import ConflictError
from app.services.waitlist_storage import (
    EMAIL_TAKEN_MESSAGE,
    PHONE_TAKEN_MESSAGE,
    FileWaitlistStorage,
)


@pytest.fixture
def storage(tmp_path):
    return FileWaitlistStorage(tmp_path / "data" / "whitelist.json")


@pytest.mark.asyncio
async def test_missing_file_reads_as_empty(storage):
    assert await storage.find_existing("amina@zolar.ma", None) is None
    stats = await storage.stats()
    assert (stats.total, stats.email, stats.phone) == (0, 0, 0)


@pytest.mark.asyncio
async def test_create_writes_json_array(storage):
    entry = await storage.create("amina@zolar.ma", None, "Landing")

    records = json.loads(storage.path.read_text(encoding="utf-8"))
    assert len(records) == 1
    assert records[0]["id"] == entry.id
    assert records[0]["email"] == "amina@zolar.ma"
    assert records[0]["phone"] is None
    assert records[0]["createdAt"] == records[0]["updatedAt"]
    assert entry.created_at == entry.updated_at


@pytest.mark.asyncio
async def test_find_existing_matches_email_or_phone(storage):
    await storage.create("amina@zolar.ma", None)
    await storage.create(None, "+212661234567")

    by_email = await storage.find_existing("amina@zolar.ma", "+212700000000")
    by_phone = await storage.find_existing("other@zolar.ma", "+212661234567")

    assert by_email.email == "amina@zolar.ma"
    assert by_phone.phone == "+212661234567"
    assert await storage.find_existing("other@zolar.ma", "+212700000000") is None


@pytest.mark.asyncio
async def test_create_rejects_duplicates(storage):
    await storage.create("amina@zolar.ma", "+212661234567")

    with pytest.raises(ConflictError) as exc:
        await storage.create("amina@zolar.ma", None)
    assert exc.value.message == EMAIL_TAKEN_MESSAGE

    with pytest.raises(ConflictError) as exc:
        await storage.create("new@zolar.ma", "+212661234567")
    assert exc.value.message == PHONE_TAKEN_MESSAGE

    assert (await storage.stats()).total == 1


@pytest.mark.asyncio
async def test_stats_counts_contacts(storage):
    await storage.create("a@zolar.ma", None)
    await storage.create("b@zolar.ma", "+212661234567")
    await storage.create(None, "+212561234567")

    stats = await storage.stats()
    assert stats.total == 3
    assert stats.email == 2
    assert stats.phone == 2


@pytest.mark.asyncio
async def test_corrupt_file_reads_as_empty(storage):
    storage.path.parent.mkdir(parents=True)
    storage.path.write_text("{not json", encoding="utf-8")

    assert (await storage.stats()).total == 0
    await storage.create("a@zolar.ma", None)
    assert (await storage.stats()).total == 1
