"""
Tests for the Twilio WhatsApp channel: inbound parsing, splitting, sending.
"""
import httpx
import pytest

from channels.base import ChannelError
from channels.whatsapp_adapter import (
    TwilioWhatsAppSender, normalize_phone, parse_inbound, split_message,
)
from models.schemas import ChannelType


class TestInbound:
    def test_parses_twilio_form(self):
        message = parse_inbound({
            "From": "whatsapp:+919876543210",
            "Body": "  2 ",
            "ProfileName": "Asha",
            "MessageSid": "SM123",
        })
        assert message.channel == ChannelType.WHATSAPP
        assert message.phone == "+919876543210"
        assert message.sender_address == "whatsapp:+919876543210"
        assert message.content == "2"
        assert message.sender_name == "Asha"
        assert message.metadata == {"MessageSid": "SM123"}

    @pytest.mark.parametrize("form", [
        {"Body": "hi"},
        {"From": "whatsapp:+919876543210"},
        {"From": "", "Body": "hi"},
        {"From": "whatsapp:+919876543210", "Body": "   "},
    ])
    def test_missing_fields(self, form):
        assert parse_inbound(form) is None

    def test_control_characters_stripped(self):
        message = parse_inbound({"From": "whatsapp:+91", "Body": "menu\x00\x07"})
        assert message.content == "menu"

    @pytest.mark.parametrize("address,phone", [
        ("whatsapp:+919876543210", "+919876543210"),
        ("WhatsApp:+14155238886", "+14155238886"),
        ("+919876543210", "+919876543210"),
    ])
    def test_normalize_phone(self, address, phone):
        assert normalize_phone(address) == phone


class TestSplitMessage:
    def test_short_message_untouched(self):
        assert split_message("hello", 1500) == ["hello"]

    def test_empty_message(self):
        assert split_message("   ", 1500) == []

    def test_splits_on_paragraphs(self):
        text = "A" * 40 + "\n\n" + "B" * 40 + "\n\n" + "C" * 40
        parts = split_message(text, 90)
        assert parts == ["A" * 40 + "\n\n" + "B" * 40, "C" * 40]

    def test_falls_back_to_spaces_then_hard_cut(self):
        assert split_message("aaa bbb ccc", 7) == ["aaa bbb", "ccc"]
        assert split_message("x" * 25, 10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_every_part_within_limit(self):
        text = "\n".join(f"line {i} " + "word " * (i % 7) for i in range(200))
        parts = split_message(text, 120)
        assert all(len(p) <= 120 for p in parts)
        assert "".join(parts).replace(" ", "").replace("\n", "") == \
            text.replace(" ", "").replace("\n", "")


def twilio_transport(recorder, status_code=201):
    def handler(request: httpx.Request) -> httpx.Response:
        recorder.append(request)
        if status_code >= 400:
            return httpx.Response(status_code, json={"message": "error"})
        return httpx.Response(status_code, json={"sid": f"SM{len(recorder)}", "status": "queued"})
    return httpx.MockTransport(handler)


class TestTwilioSender:
    def _sender(self, transport, max_chars=1500, **overrides):
        kwargs = dict(account_sid="AC123", auth_token="secret", from_number="+14155238886")
        kwargs.update(overrides)
        client = httpx.AsyncClient(transport=transport, auth=("AC123", "secret"))
        return TwilioWhatsAppSender(max_message_chars=max_chars, client=client, **kwargs)

    @pytest.mark.asyncio
    async def test_posts_to_messages_api(self):
        requests = []
        sender = self._sender(twilio_transport(requests))
        results = await sender.send("+919876543210", "Hello from KMC")

        assert results == [{"sid": "SM1", "status": "queued"}]
        request = requests[0]
        assert str(request.url) == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        form = dict(httpx.QueryParams(request.content.decode()))
        assert form == {
            "From": "whatsapp:+14155238886",
            "To": "whatsapp:+919876543210",
            "Body": "Hello from KMC",
        }

    @pytest.mark.asyncio
    async def test_long_reply_sent_in_order(self):
        requests = []
        sender = self._sender(twilio_transport(requests), max_chars=20)
        await sender.send("+91", "first paragraph\n\nsecond paragraph")

        bodies = [dict(httpx.QueryParams(r.content.decode()))["Body"] for r in requests]
        assert bodies == ["first paragraph", "second paragraph"]

    @pytest.mark.asyncio
    async def test_client_error_raises_channel_error(self):
        requests = []
        sender = self._sender(twilio_transport(requests, status_code=400))
        with pytest.raises(ChannelError) as exc:
            await sender.send("+91", "hi")
        assert exc.value.channel == "whatsapp"
        assert exc.value.retryable is False

    @pytest.mark.asyncio
    async def test_accepted_message_with_unreadable_body(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, text="OK")

        sender = self._sender(httpx.MockTransport(handler))
        results = await sender.send("+91", "hi")
        assert results == [{"sid": "", "status": "queued"}]
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_unconfigured_sender_refuses(self):
        sender = TwilioWhatsAppSender(account_sid="", auth_token="", from_number="")
        assert (await sender.health_check())["configured"] is False
        with pytest.raises(ChannelError):
            await sender.send("+91", "hi")
