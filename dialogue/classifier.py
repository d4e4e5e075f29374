"""
Input Classifier — pure functions from raw user text to a dialogue symbol.

None of these functions look at session state and none of them raise:
unmatched input yields None (or False) and the controller decides what to
do with it.
"""
from __future__ import annotations

import re
from typing import Optional, Sequence

from dialogue.catalog import DISASTER_OPTIONS, MENU_OPTIONS, DisasterSubOption, MenuOption
from models.schemas import Command, Language

# Each language is recognised by its digit or by its own name in Latin or
# native script. The keyword sets are disjoint, so order only matters for
# inputs naming several languages at once.
LANGUAGE_CHOICES: tuple[tuple[Language, str, tuple[str, ...]], ...] = (
    (Language.ENGLISH, "1", ("english", "इंग्रजी", "अंग्रेजी", "अंग्रेज़ी")),
    (Language.MARATHI, "2", ("marathi", "मराठी")),
    (Language.HINDI, "3", ("hindi", "हिंदी", "हिन्दी")),
)

MENU_TRIGGERS: tuple[str, ...] = (
    "menu", "help", "options", "services",
    "मेनू", "मेन्यू", "मदत", "सेवा", "पर्याय",        # Marathi
    "सहायता", "मदद", "विकल्प",                        # Hindi
)

_COMMANDS = {c.value: c for c in Command}


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def _has_term(lowered: str, term: str) -> bool:
    # Latin terms must start a word ("back" is not in "feedback"); native
    # script terms match anywhere.
    term = term.lower()
    if term.isascii():
        return re.search(rf"(?<![a-z0-9]){re.escape(term)}", lowered) is not None
    return term in lowered


def classify_language_choice(text: str) -> Optional[Language]:
    choice = _normalize(text)
    if not choice:
        return None
    for language, digit, names in LANGUAGE_CHOICES:
        if choice == digit or any(name in choice for name in names):
            return language
    return None


def classify_menu_selection(
    text: str, options: Sequence[MenuOption] = MENU_OPTIONS,
) -> Optional[MenuOption]:
    """Exact numeric key first, then the first option whose any-language label occurs in the text."""
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    for option in options:
        if option.number == trimmed:
            return option

    lowered = trimmed.lower()
    for option in options:
        if any(label.lower() in lowered for label in option.labels.values()):
            return option
    return None


def classify_disaster_sub_option(
    text: str, options: Sequence[DisasterSubOption] = DISASTER_OPTIONS,
) -> Optional[DisasterSubOption]:
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    for option in options:
        if option.number == trimmed:
            return option

    lowered = trimmed.lower()
    for option in options:
        if any(_has_term(lowered, term) for term in option.match_terms):
            return option
    return None


def should_show_menu(text: str) -> bool:
    lowered = _normalize(text)
    return any(trigger in lowered for trigger in MENU_TRIGGERS)


def parse_command(text: str) -> Optional[Command]:
    """Slash commands only match the whole message body."""
    return _COMMANDS.get(_normalize(text))


def detect_language_preference(texts: Sequence[str]) -> Optional[Language]:
    """
    Infer an established language from a whole transcript (web chat, where
    the client holds the history). Checked English → Marathi → Hindi.
    """
    joined = " ".join(texts).lower()
    for language, _, names in LANGUAGE_CHOICES:
        if any(name in joined for name in names):
            return language
    return None
