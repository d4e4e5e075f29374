"""
Core data models for the KMC citizen assistant.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class Language(str, Enum):
    ENGLISH = "english"
    MARATHI = "marathi"
    HINDI = "hindi"


class DialogueState(str, Enum):
    INITIAL = "initial"
    LANGUAGE_SELECTION = "language_selection"
    MENU_SHOWN = "menu_shown"
    DISASTER_SUBMENU = "disaster_submenu"
    FREE_TEXT_MODE = "free_text_mode"


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ServiceIntent(str, Enum):
    """Main-menu categories. Every member needs a handler in the composer."""
    DISASTER_MANAGEMENT = "disaster_management"
    PROPERTY_TAX = "property_tax"
    WATER_SUPPLY = "water_supply"
    BIRTH_CERTIFICATE = "birth_certificate"
    DEATH_CERTIFICATE = "death_certificate"
    BUSINESS_LICENSE = "business_license"
    COMPLAINT = "complaint"
    CONTACT = "contact"
    FREE_TEXT = "free_text"


class DisasterIntent(str, Enum):
    WATER_LEVEL = "water_level"
    SHELTERS = "shelters"
    EMERGENCY_CONTACTS = "emergency_contacts"
    SAFETY_GUIDELINES = "safety_guidelines"
    DISASTER_OFFICER = "disaster_officer"
    REPORT_EMERGENCY = "report_emergency"
    BACK = "back"


class Command(str, Enum):
    HELP = "/help"
    MENU = "/menu"
    CLEAR = "/clear"


class ChannelType(str, Enum):
    WHATSAPP = "whatsapp"
    WEB = "web"


# ──────────────────────────────────────────────────────────────
#  Session — per phone number conversation state
# ──────────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatTurn(BaseModel):
    """A single history entry, fed back to the LLM as context."""
    role: TurnRole
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    """
    Everything persisted for one conversation identity.
    A missing record is equivalent to Session(): state INITIAL, no language.
    """
    history: list[ChatTurn] = []
    language: Optional[Language] = None          # None = not chosen yet
    state: DialogueState = DialogueState.INITIAL
    service_context: Optional[str] = None        # last menu category, telemetry only

    @property
    def is_new(self) -> bool:
        return self.state == DialogueState.INITIAL and not self.history

    @property
    def effective_language(self) -> Language:
        return self.language or Language.ENGLISH

    def history_for_llm(self) -> list[dict[str, Any]]:
        return [{"role": t.role.value, "content": t.content} for t in self.history]


# ──────────────────────────────────────────────────────────────
#  Channel payloads
# ──────────────────────────────────────────────────────────────

class InboundMessage(BaseModel):
    """A normalized inbound chat message, independent of the provider."""
    channel: ChannelType = ChannelType.WHATSAPP
    sender_address: str                 # raw provider address, e.g. "whatsapp:+91..."
    phone: str                          # conversation identity used for session keys
    content: str
    sender_name: str = ""
    metadata: dict[str, Any] = {}


class WebChatMessage(BaseModel):
    role: TurnRole
    content: str


class WebChatRequest(BaseModel):
    messages: list[WebChatMessage]
