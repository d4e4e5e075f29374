"""
Menu Catalog — the static, ordered menus a WhatsApp user can pick from.

MAIN MENU:  numbers "1".."9", last entry is always the free-text escape.
DISASTER:   numbers "1".."7", includes a "back to main menu" entry.

Both tables are validated at import; a broken catalog fails the process at
startup instead of mis-routing messages later.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from models.schemas import DisasterIntent, Language, ServiceIntent


@dataclass(frozen=True)
class MenuOption:
    number: str
    labels: dict[Language, str]
    intent: ServiceIntent

    def label(self, language: Language) -> str:
        return self.labels[language]


@dataclass(frozen=True)
class DisasterSubOption:
    number: str
    labels: dict[Language, str]
    intent: DisasterIntent
    keywords: tuple[str, ...] = field(default_factory=tuple)   # English + transliterated

    def label(self, language: Language) -> str:
        return self.labels[language]

    @property
    def match_terms(self) -> tuple[str, ...]:
        return tuple(self.labels.values()) + self.keywords


def _labels(english: str, marathi: str, hindi: str) -> dict[Language, str]:
    return {Language.ENGLISH: english, Language.MARATHI: marathi, Language.HINDI: hindi}


# ──────────────────────────────────────────────────────────────
#  Main menu
# ──────────────────────────────────────────────────────────────

MENU_OPTIONS: tuple[MenuOption, ...] = (
    MenuOption("1", _labels("Disaster Management", "आपत्ती व्यवस्थापन", "आपदा प्रबंधन"),
               ServiceIntent.DISASTER_MANAGEMENT),
    MenuOption("2", _labels("Property Tax Payment", "मिळकत कर भरणा", "संपत्ति कर भुगतान"),
               ServiceIntent.PROPERTY_TAX),
    MenuOption("3", _labels("Water Bill Payment", "पाणी बिल भरणा", "पानी का बिल भुगतान"),
               ServiceIntent.WATER_SUPPLY),
    MenuOption("4", _labels("Birth Certificate", "जन्म प्रमाणपत्र", "जन्म प्रमाण पत्र"),
               ServiceIntent.BIRTH_CERTIFICATE),
    MenuOption("5", _labels("Death Certificate", "मृत्यू प्रमाणपत्र", "मृत्यु प्रमाण पत्र"),
               ServiceIntent.DEATH_CERTIFICATE),
    MenuOption("6", _labels("Business License", "व्यवसाय परवाना", "व्यापार लाइसेंस"),
               ServiceIntent.BUSINESS_LICENSE),
    MenuOption("7", _labels("Register Complaint", "तक्रार नोंदवा", "शिकायत दर्ज करें"),
               ServiceIntent.COMPLAINT),
    MenuOption("8", _labels("Contact Information", "संपर्क माहिती", "संपर्क जानकारी"),
               ServiceIntent.CONTACT),
    MenuOption("9", _labels("Other / Type your question", "इतर / आपला प्रश्न टाइप करा",
                            "अन्य / अपना प्रश्न टाइप करें"),
               ServiceIntent.FREE_TEXT),
)


# ──────────────────────────────────────────────────────────────
#  Disaster management sub-menu
# ──────────────────────────────────────────────────────────────

DISASTER_OPTIONS: tuple[DisasterSubOption, ...] = (
    DisasterSubOption(
        "1", _labels("Water Level & Dam Status", "पाणी पातळी व धरण स्थिती", "जल स्तर और बांध स्थिति"),
        DisasterIntent.WATER_LEVEL,
        ("water level", "dam status", "dam level", "river level", "flood level", "pani patli", "dharan", "jal star", "पाणी पातळी", "जल स्तर"),
    ),
    DisasterSubOption(
        "2", _labels("Relief Shelters", "निवारा केंद्रे", "राहत शिविर"),
        DisasterIntent.SHELTERS,
        ("shelter", "relief camp", "nivara", "rahat", "shivir", "निवारा", "शिविर"),
    ),
    DisasterSubOption(
        "3", _labels("Emergency Contacts", "आपत्कालीन संपर्क", "आपातकालीन संपर्क"),
        DisasterIntent.EMERGENCY_CONTACTS,
        ("emergency contact", "helpline", "control room", "aapatkalin", "apatkalin", "sampark"),
    ),
    DisasterSubOption(
        "4", _labels("Safety Guidelines", "सुरक्षा सूचना", "सुरक्षा दिशानिर्देश"),
        DisasterIntent.SAFETY_GUIDELINES,
        ("safety", "precaution", "suraksha", "सुरक्षा"),
    ),
    DisasterSubOption(
        "5", _labels("Disaster Officer Contact", "आपत्ती अधिकारी संपर्क", "आपदा अधिकारी संपर्क"),
        DisasterIntent.DISASTER_OFFICER,
        ("officer", "adhikari", "अधिकारी"),
    ),
    DisasterSubOption(
        "6", _labels("Report an Emergency", "आपत्कालीन घटना कळवा", "आपात स्थिति की सूचना दें"),
        DisasterIntent.REPORT_EMERGENCY,
        ("report", "kalva", "suchna", "कळवा", "सूचना दें"),
    ),
    DisasterSubOption(
        "7", _labels("Back to Main Menu", "मुख्य मेनूवर परत", "मुख्य मेनू पर वापस"),
        DisasterIntent.BACK,
        ("back", "main menu", "menu", "parat", "vapas", "परत", "मागे", "वापस", "मेनू", "मेन्यू"),
    ),
)


# ──────────────────────────────────────────────────────────────
#  Invariants
# ──────────────────────────────────────────────────────────────

def _check_numbering(options: Sequence, name: str) -> list[str]:
    errors = []
    expected = [str(i) for i in range(1, len(options) + 1)]
    actual = [o.number for o in options]
    if actual != expected:
        errors.append(f"{name} numbers must be contiguous from '1', got {actual}")
    if any(len(n) != 1 for n in actual):
        errors.append(f"{name} keys must be single characters")
    for o in options:
        missing = set(Language) - set(o.labels)
        if missing:
            errors.append(f"{name} option {o.number} missing labels for {sorted(m.value for m in missing)}")
    return errors


def validate_catalog(
    menu: Sequence[MenuOption] = MENU_OPTIONS,
    disaster: Sequence[DisasterSubOption] = DISASTER_OPTIONS,
) -> None:
    """Raise ValueError if either menu breaks its structural invariants."""
    errors = _check_numbering(menu, "main menu") + _check_numbering(disaster, "disaster menu")
    if not menu or menu[-1].intent != ServiceIntent.FREE_TEXT:
        errors.append("main menu must end with the free-text option")
    if not any(o.intent == DisasterIntent.BACK for o in disaster):
        errors.append("disaster menu must include a back option")
    if errors:
        raise ValueError("Invalid menu catalog: " + "; ".join(errors))


validate_catalog()
