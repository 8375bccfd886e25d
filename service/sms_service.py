import logging
import re
from typing import Dict, Iterable, Optional
import httpx
from config.settings import settings
from model.api import SmsResult

logger = logging.getLogger(__name__)

E164 = re.compile(r"^\+\d{10,15}$")


class SmsService:
    """
    Outbound SMS, one message per recipient.

    Provider order: Twilio when fully configured, else Africa's Talking, else
    nothing is sent and the call reports success. Provider failures come back
    as ``ok=False``; this service never raises for them.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, **kwargs)
        async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0)) as client:
            return await client.post(url, **kwargs)

    async def send(self, phone: str, message: str) -> SmsResult:
        if not E164.match(phone or ""):
            return SmsResult(ok=False, error="Invalid phone format")
        try:
            if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER:
                result = await self._send_twilio(phone, message)
            elif settings.AT_API_KEY and settings.AT_USERNAME:
                result = await self._send_africastalking(phone, message)
            else:
                logger.info("sms.no_provider skipped")
                result = SmsResult(ok=True)
        except httpx.RequestError as e:
            logger.error("sms.request_error err=%s", type(e).__name__)
            result = SmsResult(ok=False, error=str(e) or "send failed")
        logger.info("sms.send ok=%s", result.ok)
        return result

    async def broadcast(self, phones: Iterable[str], message: str) -> Dict[str, SmsResult]:
        results: Dict[str, SmsResult] = {}
        for phone in phones:
            results[phone] = await self.send(phone, message)
        sent = sum(1 for r in results.values() if r.ok)
        logger.info("sms.broadcast sent=%d total=%d", sent, len(results))
        return results

    async def _send_twilio(self, to: str, body: str) -> SmsResult:
        sid = settings.TWILIO_ACCOUNT_SID
        url = f"{settings.TWILIO_API_URL}/Accounts/{sid}/Messages.json"
        res = await self._post(
            url,
            auth=(sid, settings.TWILIO_AUTH_TOKEN),
            data={"To": to, "From": settings.TWILIO_FROM_NUMBER, "Body": body},
        )
        if res.status_code // 100 != 2:
            return SmsResult(ok=False, error=f"Twilio HTTP {res.status_code}")
        try:
            data = res.json()
        except ValueError:
            data = {}
        if data.get("sid"):
            return SmsResult(ok=True)
        return SmsResult(ok=False, error=str(data.get("message") or "unknown"))

    async def _send_africastalking(self, to: str, body: str) -> SmsResult:
        form = {"username": settings.AT_USERNAME, "to": to, "message": body}
        if settings.AT_FROM:
            form["from"] = settings.AT_FROM
        res = await self._post(
            settings.AT_API_URL,
            headers={"Accept": "application/json", "apiKey": settings.AT_API_KEY},
            data=form,
        )
        if res.status_code // 100 != 2:
            return SmsResult(ok=False, error=f"AT HTTP {res.status_code}")
        try:
            data = res.json().get("SMSMessageData") or {}
        except ValueError:
            data = {}
        if data.get("Recipients"):
            return SmsResult(ok=True)
        return SmsResult(ok=False, error=str(data.get("Message") or "unknown"))
