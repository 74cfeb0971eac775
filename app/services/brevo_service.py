from typing import Optional, AsyncIterator
from urllib.parse import quote
import httpx
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

# Brevo caps list pagination at 500 contacts per page
LIST_PAGE_SIZE = 500


def error_payload(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"raw": response.text}
    return body if isinstance(body, dict) else {"raw": body}


def is_duplicate_error(error: httpx.HTTPStatusError) -> bool:
    """True when Brevo rejected a create because the contact already exists."""
    if error.response.status_code != 400:
        return False
    body = error_payload(error.response)
    code = str(body.get("code", "")).lower()
    message = str(body.get("message", "")).lower()
    return code == "duplicate_parameter" or "duplicate" in message or "already exist" in message


class BrevoService:
    """Thin async client for the Brevo contacts and transactional email APIs."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key or settings.BREVO_API_KEY
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.BREVO_API_URL,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "api-key": self.api_key,
            },
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def get_contact(self, identifier: str, identifier_type: str = "email_id") -> Optional[dict]:
        """Fetch a contact by email or phone; returns None when Brevo has no match."""
        resp = await self._client.get(
            f"/contacts/{quote(identifier, safe='')}",
            params={"identifierType": identifier_type},
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    async def create_contact(self, payload: dict) -> dict:
        try:
            resp = await self._client.post("/contacts", json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Brevo create contact error status={e.response.status_code} response={error_payload(e.response)}")
            raise
        # 204 when updateEnabled matched an existing contact
        return resp.json() if resp.content else {}

    async def update_contact(self, email: str, payload: dict) -> None:
        resp = await self._client.put(f"/contacts/{quote(email, safe='')}", json=payload)
        resp.raise_for_status()

    async def get_list(self, list_id: int) -> dict:
        resp = await self._client.get(f"/contacts/lists/{list_id}")
        resp.raise_for_status()
        return resp.json()

    async def iter_list_contacts(self, list_id: int) -> AsyncIterator[dict]:
        offset = 0
        while True:
            resp = await self._client.get(
                f"/contacts/lists/{list_id}/contacts",
                params={"limit": LIST_PAGE_SIZE, "offset": offset},
            )
            resp.raise_for_status()
            body = resp.json()
            contacts = body.get("contacts") or []
            for contact in contacts:
                yield contact
            offset += len(contacts)
            if not contacts or offset >= int(body.get("count", 0)):
                break

    async def send_transactional_email(self, payload: dict) -> dict:
        resp = await self._client.post("/smtp/email", json=payload)
        if resp.is_error:
            logger.error(f"Brevo email error status={resp.status_code} response={error_payload(resp)}")
        resp.raise_for_status()
        return resp.json() if resp.content else {}

    async def close(self):
        await self._client.aclose()
