"""Channel adapters for replying to citizens (Twilio WhatsApp)."""
from channels.base import ChannelError, InputSanitizer, MessageSender
from channels.whatsapp_adapter import (
    TwilioWhatsAppSender,
    normalize_phone,
    parse_inbound,
    split_message,
)

__all__ = [
    "ChannelError", "InputSanitizer", "MessageSender",
    "TwilioWhatsAppSender", "normalize_phone", "parse_inbound", "split_message",
]
