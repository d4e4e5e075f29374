"""
Response Composer — renders canned multilingual replies for resolved intents.

Content comes from messages.yaml (intent → language → text) and is checked
for completeness when the composer is built, so a missing translation is a
startup error rather than a KeyError in the middle of a conversation.

Interpolation is limited to:
  - menu footers            ({count})
  - certificate kind        ({certificate}, {documents})
  - water-level bulletin    ({date}, {time}, ... from the knowledge base)
"""
from __future__ import annotations

import structlog
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import yaml

from core.knowledge_base import KnowledgeBase
from dialogue.catalog import DISASTER_OPTIONS, MENU_OPTIONS, DisasterSubOption, MenuOption
from models.schemas import DisasterIntent, Language, ServiceIntent

logger = structlog.get_logger()

DEFAULT_MESSAGES_PATH = Path(__file__).parent / "messages.yaml"

_SERVICE_TEXT_KEYS = ("property_tax", "water_supply", "certificate", "business_license",
                      "complaint", "contact")
_PER_LANGUAGE_KEYS = (("free_text_prompt",), ("menu", "header"), ("menu", "footer"),
                      ("reminders", "main"), ("reminders", "disaster"),
                      ("disaster_menu", "header"), ("disaster_menu", "footer"))


def _dig(data: dict[str, Any], path: Sequence[str]) -> Any:
    node: Any = data
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def validate_messages(messages: dict[str, Any]) -> None:
    """Raise ValueError listing every missing (intent, language) text."""
    missing: list[str] = []

    for key in ("language_prompt", "apology", "clear_confirmation"):
        if not isinstance(messages.get(key), str):
            missing.append(key)

    per_language = list(_PER_LANGUAGE_KEYS)
    per_language += [("services", k) for k in _SERVICE_TEXT_KEYS]
    per_language += [("disaster", d.value) for d in DisasterIntent if d != DisasterIntent.BACK]
    for path in per_language:
        for language in Language:
            if not isinstance(_dig(messages, (*path, language.value)), str):
                missing.append(".".join((*path, language.value)))

    for kind in (ServiceIntent.BIRTH_CERTIFICATE, ServiceIntent.DEATH_CERTIFICATE):
        for language in Language:
            entry = _dig(messages, ("certificate_kinds", kind.value, language.value)) or {}
            if not {"name", "documents"} <= set(entry):
                missing.append(f"certificate_kinds.{kind.value}.{language.value}")

    if missing:
        raise ValueError(f"Message table incomplete: {', '.join(missing)}")


class ResponseComposer:
    """
    Pure renderer: same intent + language always yields the same text.
    Holds no session state.
    """

    def __init__(
        self,
        messages: dict[str, Any],
        knowledge_base: KnowledgeBase,
        menu: Sequence[MenuOption] = MENU_OPTIONS,
        disaster_menu: Sequence[DisasterSubOption] = DISASTER_OPTIONS,
    ):
        validate_messages(messages)
        self._m = messages
        self._kb = knowledge_base
        self._menu = tuple(menu)
        self._disaster_menu = tuple(disaster_menu)

        self._service_handlers: dict[ServiceIntent, Callable[[Language], str]] = {
            ServiceIntent.DISASTER_MANAGEMENT: self.disaster_menu,
            ServiceIntent.PROPERTY_TAX: lambda lang: self._service("property_tax", lang),
            ServiceIntent.WATER_SUPPLY: lambda lang: self._service("water_supply", lang),
            ServiceIntent.BIRTH_CERTIFICATE:
                lambda lang: self._certificate(ServiceIntent.BIRTH_CERTIFICATE, lang),
            ServiceIntent.DEATH_CERTIFICATE:
                lambda lang: self._certificate(ServiceIntent.DEATH_CERTIFICATE, lang),
            ServiceIntent.BUSINESS_LICENSE: lambda lang: self._service("business_license", lang),
            ServiceIntent.COMPLAINT: lambda lang: self._service("complaint", lang),
            ServiceIntent.CONTACT: lambda lang: self._service("contact", lang),
            ServiceIntent.FREE_TEXT: self.free_text_prompt,
        }
        self._disaster_handlers: dict[DisasterIntent, Callable[[Language], str]] = {
            DisasterIntent.WATER_LEVEL: self._water_level,
            DisasterIntent.SHELTERS: lambda lang: self._disaster("shelters", lang),
            DisasterIntent.EMERGENCY_CONTACTS: lambda lang: self._disaster("emergency_contacts", lang),
            DisasterIntent.SAFETY_GUIDELINES: lambda lang: self._disaster("safety_guidelines", lang),
            DisasterIntent.DISASTER_OFFICER: lambda lang: self._disaster("disaster_officer", lang),
            DisasterIntent.REPORT_EMERGENCY: lambda lang: self._disaster("report_emergency", lang),
            DisasterIntent.BACK: self.main_menu,
        }

        unhandled = (set(ServiceIntent) - set(self._service_handlers)) | \
                    (set(DisasterIntent) - set(self._disaster_handlers))
        if unhandled:
            raise ValueError(f"No composer handler for intents: {sorted(i.value for i in unhandled)}")

    @classmethod
    def from_yaml(cls, knowledge_base: KnowledgeBase,
                  path: Optional[Path] = None) -> "ResponseComposer":
        path = Path(path or DEFAULT_MESSAGES_PATH)
        with open(path, encoding="utf-8") as f:
            messages = yaml.safe_load(f) or {}
        logger.info("message_table_loaded", path=str(path))
        return cls(messages, knowledge_base)

    # ── Fixed screens ─────────────────────────────────────────

    def language_prompt(self) -> str:
        return self._m["language_prompt"]

    def apology(self) -> str:
        return self._m["apology"]

    def clear_confirmation(self) -> str:
        return self._m["clear_confirmation"]

    def main_menu(self, language: Language) -> str:
        lines = [f"*{o.number}* - {o.label(language)}" for o in self._menu]
        footer = self._m["menu"]["footer"][language.value].format(count=len(self._menu))
        return "\n".join([self._m["menu"]["header"][language.value], "", *lines, "", footer])

    def disaster_menu(self, language: Language) -> str:
        lines = [f"*{o.number}* - {o.label(language)}" for o in self._disaster_menu]
        footer = self._m["disaster_menu"]["footer"][language.value].format(
            count=len(self._disaster_menu))
        return "\n".join([self._m["disaster_menu"]["header"][language.value], "", *lines, "", footer])

    def free_text_prompt(self, language: Language) -> str:
        return self._m["free_text_prompt"][language.value]

    # ── Reminders ─────────────────────────────────────────────

    def menu_reminder(self, language: Language) -> str:
        return self._m["reminders"]["main"][language.value]

    def disaster_reminder(self, language: Language) -> str:
        return self._m["reminders"]["disaster"][language.value]

    def with_menu_reminder(self, text: str, language: Language) -> str:
        return f"{text}\n\n{self.menu_reminder(language)}"

    # ── Intent rendering ──────────────────────────────────────

    def render_service(self, intent: ServiceIntent, language: Language) -> str:
        """
        Reply for a main-menu pick. Menus and the free-text prompt go out
        bare; service information carries the main-menu reminder.
        """
        body = self._service_handlers[intent](language)
        if intent in (ServiceIntent.DISASTER_MANAGEMENT, ServiceIntent.FREE_TEXT):
            return body
        return self.with_menu_reminder(body, language)

    def render_disaster(self, intent: DisasterIntent, language: Language) -> str:
        body = self._disaster_handlers[intent](language)
        if intent == DisasterIntent.BACK:
            return body
        return f"{body}\n\n{self.disaster_reminder(language)}"

    # ── Internals ─────────────────────────────────────────────

    def _service(self, key: str, language: Language) -> str:
        return self._m["services"][key][language.value]

    def _certificate(self, kind: ServiceIntent, language: Language) -> str:
        entry = self._m["certificate_kinds"][kind.value][language.value]
        return self._m["services"]["certificate"][language.value].format(
            certificate=entry["name"], documents=entry["documents"],
        )

    def _disaster(self, key: str, language: Language) -> str:
        return self._m["disaster"][key][language.value]

    def _water_level(self, language: Language) -> str:
        info = self._kb.water_level_info
        return self._disaster("water_level", language).format(
            date=info.get("date", ""),
            time=info.get("time", ""),
            rajaram_dam=info.get("rajaram_dam", ""),
            discharge=info.get("discharge", ""),
            river_levels=info.get("river_levels", ""),
            location=info.get("location", ""),
        )
