import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest
import resend

from app.services.brevo_service import BrevoService
from app.services.email_service import EmailService
from app.services.waitlist_service import WaitlistService
from app.services.waitlist_storage import FileWaitlistStorage
from app.services.whatsapp_service import WhatsAppService, whatsapp_address


def test_whatsapp_address_formats_local_numbers():
    assert whatsapp_address("0661234567") == "whatsapp:+212661234567"
    assert whatsapp_address("+212661234567") == "whatsapp:+212661234567"
    assert whatsapp_address("212661234567") == "whatsapp:+212661234567"


@pytest.mark.asyncio
async def test_whatsapp_is_simulated_without_credentials():
    def fail(request):
        raise AssertionError("Twilio must not be called")

    service = WhatsAppService(account_sid="", auth_token="", from_number="", transport=httpx.MockTransport(fail))
    assert await service.send_confirmation("0661234567") is None
    await service.close()


@pytest.mark.asyncio
async def test_whatsapp_sends_through_twilio():
    seen = []

    def twilio(request):
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM123"})

    service = WhatsAppService(account_sid="AC123", auth_token="secret", from_number="+14155238886",
                              transport=httpx.MockTransport(twilio))
    assert await service.send_confirmation("0661234567") == "SM123"
    await service.close()

    request = seen[0]
    assert request.url.path.endswith("/Accounts/AC123/Messages.json")
    assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"AC123:secret").decode()
    form = parse_qs(request.content.decode())
    assert form["To"] == ["whatsapp:+212661234567"]
    assert form["From"] == ["whatsapp:+14155238886"]
    assert "whitelist" in form["Body"][0]


@pytest.mark.asyncio
async def test_brevo_confirmation_email_payload():
    seen = []

    def brevo(request):
        seen.append(request)
        return httpx.Response(201, json={"messageId": "<abc@smtp-relay>"})

    client = BrevoService(api_key="test-key", base_url="https://api.brevo.com/v3", transport=httpx.MockTransport(brevo))
    service = EmailService(provider="brevo", brevo=client)

    assert await service.send_waitlist_confirmation("amina@zolar.ma") is True
    await client.close()

    body = json.loads(seen[0].content)
    assert seen[0].url.path == "/v3/smtp/email"
    assert body["to"] == [{"email": "amina@zolar.ma"}]
    assert body["sender"]["email"]
    assert "liste d'attente" in body["subject"]


@pytest.mark.asyncio
async def test_email_failure_returns_false():
    client = BrevoService(api_key="test-key", base_url="https://api.brevo.com/v3",
                          transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"message": "boom"})))
    service = EmailService(provider="brevo", brevo=client)
    assert await service.send_waitlist_confirmation("amina@zolar.ma") is False
    await client.close()


@pytest.mark.asyncio
async def test_resend_provider(monkeypatch):
    sent = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "re_123"})

    service = EmailService(provider="resend", resend_api_key="re_test")
    assert await service.send_waitlist_confirmation("amina@zolar.ma") is True
    assert sent[0]["to"] == ["amina@zolar.ma"]
    assert "<" in sent[0]["from"]


@pytest.mark.asyncio
async def test_resend_without_key_is_skipped():
    service = EmailService(provider="resend", resend_api_key="")
    assert await service.send_waitlist_confirmation("amina@zolar.ma") is False


@pytest.mark.asyncio
async def test_signup_syncs_contact_to_crm(tmp_path, test_settings):
    seen = []

    def brevo(request):
        seen.append(request)
        return httpx.Response(204)

    crm = BrevoService(api_key="test-key", base_url="https://api.brevo.com/v3", transport=httpx.MockTransport(brevo))
    service = WaitlistService(FileWaitlistStorage(tmp_path / "whitelist.json"), test_settings, crm=crm)

    result = await service.register("amina@zolar.ma", "0661234567")
    await service.close()

    assert result.services.crm == "Ajouté à la liste d'attente"
    body = json.loads(seen[0].content)
    assert body["updateEnabled"] is True
    assert body["email"] == "amina@zolar.ma"
    assert body["attributes"]["WHATSAPP"] == "+212661234567"


@pytest.mark.asyncio
async def test_crm_failure_is_reported_not_raised(tmp_path, test_settings):
    crm = BrevoService(api_key="test-key", base_url="https://api.brevo.com/v3",
                       transport=httpx.MockTransport(lambda request: httpx.Response(502)))
    service = WaitlistService(FileWaitlistStorage(tmp_path / "whitelist.json"), test_settings, crm=crm)

    result = await service.register("amina@zolar.ma", None)
    await service.close()

    assert result.services.crm == "Synchronisation échouée"
    assert result.entry.email == "amina@zolar.ma"
