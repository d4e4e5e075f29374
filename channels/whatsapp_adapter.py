"""
WhatsApp Channel Adapter — Twilio WhatsApp integration.

Provides:
- Inbound: Twilio webhook form parsing (From, Body, ProfileName)
- Phone normalization (the "whatsapp:" prefix is stripped for session keys)
- Outbound: Twilio Messages API via httpx, retried with tenacity
- Long replies split on paragraph / line boundaries (split_message)

API Docs: https://www.twilio.com/docs/whatsapp/api
"""
from __future__ import annotations

import structlog
from typing import Any, Mapping, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from channels.base import ChannelError, InputSanitizer, MessageSender
from models.schemas import ChannelType, InboundMessage

logger = structlog.get_logger()

WHATSAPP_PREFIX = "whatsapp:"


# ══════════════════════════════════════════════════════════════
#  ADDRESSING & INBOUND
# ══════════════════════════════════════════════════════════════

def normalize_phone(address: str) -> str:
    """'whatsapp:+919876543210' → '+919876543210'."""
    address = (address or "").strip()
    if address.lower().startswith(WHATSAPP_PREFIX):
        address = address[len(WHATSAPP_PREFIX):]
    return address.strip()


def to_whatsapp_address(phone: str) -> str:
    phone = normalize_phone(phone)
    return f"{WHATSAPP_PREFIX}{phone}"


_sanitizer = InputSanitizer()


def parse_inbound(form: Mapping[str, Any]) -> Optional[InboundMessage]:
    """
    Normalize a Twilio webhook form. Returns None when the sender or the
    body is missing, which the HTTP layer answers with a 400.
    """
    sender = str(form.get("From") or "").strip()
    body = form.get("Body")
    if not sender or body is None or not str(body).strip():
        return None

    phone = normalize_phone(sender)
    if not phone:
        return None

    return InboundMessage(
        channel=ChannelType.WHATSAPP,
        sender_address=sender,
        phone=phone,
        content=_sanitizer.sanitize(str(body)),
        sender_name=str(form.get("ProfileName") or ""),
        metadata={k: form[k] for k in ("MessageSid", "WaId", "NumMedia") if form.get(k)},
    )


# ══════════════════════════════════════════════════════════════
#  MESSAGE SPLITTING
# ══════════════════════════════════════════════════════════════

def split_message(text: str, limit: int = 1500) -> list[str]:
    """
    Split text into chunks no longer than limit, preferring paragraph
    breaks, then line breaks, then spaces. Hard-cuts a run with no
    whitespace. Order is preserved; empty chunks are dropped.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    text = text.strip()
    if len(text) <= limit:
        return [text] if text else []

    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        window = remaining[:limit + 1]
        cut = -1
        for separator in ("\n\n", "\n", " "):
            cut = window.rfind(separator)
            if cut > 0:
                break
        if cut <= 0:
            cut = limit
        chunk = remaining[:cut].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[cut:].strip()
    if remaining:
        chunks.append(remaining)
    return chunks


# ══════════════════════════════════════════════════════════════
#  OUTBOUND — TWILIO
# ══════════════════════════════════════════════════════════════

class TwilioWhatsAppSender(MessageSender):
    """Sends replies through the Twilio Messages API."""

    channel_type = ChannelType.WHATSAPP
    BASE_URL = "https://api.twilio.com/2010-04-01/Accounts"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        max_message_chars: int = 1500,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = to_whatsapp_address(from_number) if from_number else ""
        self.max_message_chars = max_message_chars
        self.base_url = f"{self.BASE_URL}/{account_sid}"
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=(self.account_sid, self.auth_token),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._client

    @retry(stop=stop_after_attempt(2), wait=wait_exponential(min=1, max=5), reraise=True)
    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        client = await self._get_client()
        url = f"{self.base_url}{path}.json"
        resp = await client.request(method, url, **kwargs)
        if resp.status_code >= 400:
            logger.error(
                "twilio_api_error",
                status=resp.status_code,
                body=resp.text[:500],
                path=path,
            )
            resp.raise_for_status()
        # A 2xx means Twilio accepted the message; never retry on an odd body
        try:
            return resp.json()
        except ValueError:
            logger.warning("twilio_unreadable_response", status=resp.status_code, path=path)
            return {}

    async def send(self, to: str, content: str) -> list[dict[str, Any]]:
        if not self.configured:
            raise ChannelError("Twilio WhatsApp sender is not configured",
                               channel=self.channel_type.value)

        address = to_whatsapp_address(to)
        results = []
        for part in split_message(content, self.max_message_chars):
            payload = {"From": self.from_number, "To": address, "Body": part}
            try:
                result = await self._request("POST", "/Messages", data=payload)
            except httpx.HTTPStatusError as e:
                retryable = e.response.status_code >= 500 or e.response.status_code == 429
                raise ChannelError(f"Twilio rejected message: {e.response.status_code}",
                                   channel=self.channel_type.value,
                                   retryable=retryable) from e
            except httpx.HTTPError as e:
                raise ChannelError(f"Twilio request failed: {e}",
                                   channel=self.channel_type.value, retryable=True) from e

            results.append({"sid": result.get("sid", ""), "status": result.get("status", "queued")})

        logger.info("whatsapp_message_sent", to=address, parts=len(results))
        return results

    async def health_check(self) -> dict[str, Any]:
        return {"channel": self.channel_type.value, "configured": self.configured}

    async def shutdown(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
