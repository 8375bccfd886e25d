"""
Unit tests for the outbound SMS gateway
"""
import httpx
import pytest
from config.settings import settings
from service.sms_service import SmsService


@pytest.fixture
def no_providers(monkeypatch):
    for name in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER", "AT_API_KEY", "AT_USERNAME", "AT_FROM"):
        monkeypatch.setattr(settings, name, None)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSend:
    @pytest.mark.parametrize("phone", ["0712345678", "+12", "+1234567890123456", "", "+2547 1234567"])
    async def test_rejects_non_e164(self, no_providers, phone):
        result = await SmsService().send(phone, "hello")
        assert not result.ok
        assert result.error == "Invalid phone format"

    async def test_no_provider_reports_success(self, no_providers):
        result = await SmsService(mock_client(lambda r: pytest.fail("no request expected"))).send("+254712345678", "hi")
        assert result.ok

    async def test_twilio_used_when_configured(self, no_providers, monkeypatch):
        monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "secret")
        monkeypatch.setattr(settings, "TWILIO_FROM_NUMBER", "+15550000000")
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"sid": "SM1"})

        result = await SmsService(mock_client(handler)).send("+254712345678", "Visit on Friday")
        assert result.ok
        assert seen[0].url.path.endswith("/Accounts/AC123/Messages.json")
        assert b"To=%2B254712345678" in seen[0].content
        assert seen[0].headers["authorization"].startswith("Basic ")

    async def test_twilio_http_error(self, no_providers, monkeypatch):
        monkeypatch.setattr(settings, "TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setattr(settings, "TWILIO_AUTH_TOKEN", "secret")
        monkeypatch.setattr(settings, "TWILIO_FROM_NUMBER", "+15550000000")
        result = await SmsService(mock_client(lambda r: httpx.Response(401))).send("+254712345678", "x")
        assert result == type(result)(ok=False, error="Twilio HTTP 401")

    async def test_africastalking_fallback(self, no_providers, monkeypatch):
        monkeypatch.setattr(settings, "AT_API_KEY", "k")
        monkeypatch.setattr(settings, "AT_USERNAME", "sandbox")

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["apikey"] == "k"
            return httpx.Response(201, json={"SMSMessageData": {"Recipients": [{"status": "Success"}]}})

        assert (await SmsService(mock_client(handler)).send("+254712345678", "x")).ok

    async def test_africastalking_without_recipients_fails(self, no_providers, monkeypatch):
        monkeypatch.setattr(settings, "AT_API_KEY", "k")
        monkeypatch.setattr(settings, "AT_USERNAME", "sandbox")
        body = {"SMSMessageData": {"Recipients": [], "Message": "InsufficientBalance"}}
        result = await SmsService(mock_client(lambda r: httpx.Response(200, json=body))).send("+254712345678", "x")
        assert not result.ok
        assert result.error == "InsufficientBalance"

    async def test_transport_error_is_reported_not_raised(self, no_providers, monkeypatch):
        monkeypatch.setattr(settings, "AT_API_KEY", "k")
        monkeypatch.setattr(settings, "AT_USERNAME", "sandbox")

        def handler(request):
            raise httpx.ConnectError("down", request=request)

        result = await SmsService(mock_client(handler)).send("+254712345678", "x")
        assert not result.ok


class TestBroadcast:
    async def test_one_result_per_recipient(self, no_providers):
        results = await SmsService().broadcast(["+254712345678", "bad", "+254700000000"], "Reminder")
        assert {k: v.ok for k, v in results.items()} == {
            "+254712345678": True,
            "bad": False,
            "+254700000000": True,
        }
