"""
SessionStore — Per-phone-number conversation sessions on top of a KV backend.

Each session is ONE composite JSON record under `session:<phone>`:

    {"history": [...], "language": "marathi",
     "state": "menu_shown", "service_context": "property_tax"}

with a single TTL that is reset on every write. Reads degrade field by field:
a bad history becomes [], an unknown state becomes INITIAL, an unknown
language becomes unset, and unparseable JSON is a fresh session.
"""
from __future__ import annotations

import json
import structlog
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import ValidationError

from database.store_base import BaseKeyValueStore
from models.schemas import ChatTurn, DialogueState, Language, Session, TurnRole

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 3600
DEFAULT_HISTORY_LIMIT = 20

E = TypeVar("E", bound=Enum)


def _enum_or_default(enum_cls: type[E], value: Any, default: Optional[E]) -> Optional[E]:
    try:
        return enum_cls(value)
    except ValueError:
        return default


class SessionStore:
    """Load, persist and reset sessions. Stateless apart from the backend handle."""

    def __init__(
        self,
        kv: BaseKeyValueStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        key_prefix: str = "",
    ):
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self.history_limit = history_limit
        self.key_prefix = key_prefix

    def key_for(self, phone: str) -> str:
        return f"{self.key_prefix}session:{phone}"

    # ── Read / write ──────────────────────────────────────────

    async def load(self, phone: str) -> Session:
        raw = await self.kv.get(self.key_for(phone))
        return self._decode(phone, raw)

    async def save(self, phone: str, session: Session) -> None:
        await self.kv.set_with_expiry(
            self.key_for(phone), self.ttl_seconds, session.model_dump_json()
        )

    async def clear(self, phone: str) -> None:
        await self.kv.delete(self.key_for(phone))
        logger.info("session_cleared", phone=phone)

    def record_turn(self, session: Session, user_text: str, reply: str) -> Session:
        """Append user then assistant turn, keeping only the newest history_limit entries."""
        session.history.append(ChatTurn(role=TurnRole.USER, content=user_text))
        session.history.append(ChatTurn(role=TurnRole.ASSISTANT, content=reply))
        if len(session.history) > self.history_limit:
            session.history = session.history[-self.history_limit:]
        return session

    # ── Decoding ──────────────────────────────────────────────

    def _decode(self, phone: str, raw: Optional[str]) -> Session:
        if raw is None:
            return Session()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("session_record_unparseable", phone=phone)
            return Session()
        if not isinstance(data, dict):
            logger.warning("session_record_not_object", phone=phone)
            return Session()

        return Session(
            history=self._decode_history(phone, data.get("history")),
            language=_enum_or_default(Language, data.get("language"), None),
            state=_enum_or_default(DialogueState, data.get("state"), DialogueState.INITIAL),
            service_context=(
                data["service_context"] if isinstance(data.get("service_context"), str) else None
            ),
        )

    def _decode_history(self, phone: str, value: Any) -> list[ChatTurn]:
        # Older records stored history as a JSON string rather than an array
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("session_history_unparseable", phone=phone)
                return []
        if not isinstance(value, list):
            return []

        turns = []
        for item in value:
            try:
                turns.append(ChatTurn.model_validate(item))
            except ValidationError:
                logger.warning("session_history_entry_dropped", phone=phone)
        return turns[-self.history_limit:]
