"""
Tests for the input classifier and menu catalog invariants.
"""
import pytest

from dialogue.catalog import (
    DISASTER_OPTIONS, MENU_OPTIONS, DisasterSubOption, MenuOption, validate_catalog,
)
from dialogue.classifier import (
    classify_disaster_sub_option, classify_language_choice, classify_menu_selection,
    detect_language_preference, parse_command, should_show_menu,
)
from models.schemas import Command, DisasterIntent, Language, ServiceIntent


class TestLanguageChoice:
    @pytest.mark.parametrize("text,expected", [
        ("1", Language.ENGLISH),
        (" 2 ", Language.MARATHI),
        ("3", Language.HINDI),
        ("ENGLISH", Language.ENGLISH),
        ("I prefer marathi", Language.MARATHI),
        ("मराठी", Language.MARATHI),
        ("हिंदी", Language.HINDI),
        ("हिन्दी", Language.HINDI),
    ])
    def test_recognised(self, text, expected):
        assert classify_language_choice(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "4", "12", "tamil", "hello"])
    def test_unrecognised(self, text):
        assert classify_language_choice(text) is None


class TestMenuSelection:
    @pytest.mark.parametrize("number,intent", [
        ("1", ServiceIntent.DISASTER_MANAGEMENT),
        ("2", ServiceIntent.PROPERTY_TAX),
        ("3", ServiceIntent.WATER_SUPPLY),
        ("4", ServiceIntent.BIRTH_CERTIFICATE),
        ("5", ServiceIntent.DEATH_CERTIFICATE),
        ("6", ServiceIntent.BUSINESS_LICENSE),
        ("7", ServiceIntent.COMPLAINT),
        ("8", ServiceIntent.CONTACT),
        ("9", ServiceIntent.FREE_TEXT),
    ])
    def test_digits(self, number, intent):
        assert classify_menu_selection(f" {number} ").intent == intent

    def test_label_substring_any_language(self):
        assert classify_menu_selection("I want to do property tax payment").intent == ServiceIntent.PROPERTY_TAX
        assert classify_menu_selection("पाणी बिल भरणा कसा करायचा").intent == ServiceIntent.WATER_SUPPLY
        assert classify_menu_selection("शिकायत दर्ज करें").intent == ServiceIntent.COMPLAINT

    def test_digit_inside_sentence_is_not_a_key(self):
        assert classify_menu_selection("I paid 2 times") is None

    def test_first_option_in_catalog_order_wins(self):
        options = (
            MenuOption("1", {l: "tax" for l in Language}, ServiceIntent.PROPERTY_TAX),
            MenuOption("2", {l: "water tax" for l in Language}, ServiceIntent.WATER_SUPPLY),
        )
        assert classify_menu_selection("water tax", options).intent == ServiceIntent.PROPERTY_TAX

    @pytest.mark.parametrize("text", ["", "10", "what's the weather"])
    def test_unmatched(self, text):
        assert classify_menu_selection(text) is None


class TestDisasterSubOption:
    @pytest.mark.parametrize("text,intent", [
        ("1", DisasterIntent.WATER_LEVEL),
        ("7", DisasterIntent.BACK),
        ("Relief Shelters", DisasterIntent.SHELTERS),
        ("what is the river level today", DisasterIntent.WATER_LEVEL),
        ("safety tips", DisasterIntent.SAFETY_GUIDELINES),
        ("adhikari number", DisasterIntent.DISASTER_OFFICER),
        ("go back", DisasterIntent.BACK),
        ("मुख्य मेनू पर वापस", DisasterIntent.BACK),
    ])
    def test_matches(self, text, intent):
        assert classify_disaster_sub_option(text).intent == intent

    @pytest.mark.parametrize("text", [
        "report flood damage",
        "I want to report damage to my house",
    ])
    def test_damage_reports_are_not_dam_status(self, text):
        assert classify_disaster_sub_option(text).intent == DisasterIntent.REPORT_EMERGENCY

    @pytest.mark.parametrize("text", ["send image of flooding", "separate issue", "feedback"])
    def test_keywords_inside_words_do_not_match(self, text):
        assert classify_disaster_sub_option(text) is None

    def test_dam_status_still_recognised(self):
        assert classify_disaster_sub_option("dam status").intent == DisasterIntent.WATER_LEVEL

    @pytest.mark.parametrize("text", ["", "8", "xyz"])
    def test_unmatched(self, text):
        assert classify_disaster_sub_option(text) is None


class TestTriggersAndCommands:
    @pytest.mark.parametrize("text", ["menu", "Show me the MENU", "help", "options please",
                                      "services", "मेनू", "मदत", "सहायता", "विकल्प", "पर्याय"])
    def test_menu_triggers(self, text):
        assert should_show_menu(text)

    @pytest.mark.parametrize("text", ["", "property tax", "thank you"])
    def test_not_triggers(self, text):
        assert not should_show_menu(text)

    @pytest.mark.parametrize("text,command", [
        ("/help", Command.HELP), ("/MENU", Command.MENU), ("  /clear  ", Command.CLEAR),
    ])
    def test_commands(self, text, command):
        assert parse_command(text) == command

    @pytest.mark.parametrize("text", ["/clear now", "help", "/start", ""])
    def test_not_commands(self, text):
        assert parse_command(text) is None


class TestLanguagePreference:
    def test_first_language_in_check_order(self):
        assert detect_language_preference(["Choose a language", "Hindi"]) == Language.HINDI
        assert detect_language_preference(["मराठी", "english"]) == Language.ENGLISH

    def test_none_when_absent(self):
        assert detect_language_preference(["property tax?"]) is None


class TestCatalog:
    def test_shipped_catalog_is_valid(self):
        validate_catalog()
        assert [o.number for o in MENU_OPTIONS] == [str(i) for i in range(1, 10)]
        assert [o.number for o in DISASTER_OPTIONS] == [str(i) for i in range(1, 8)]

    def test_every_intent_reachable(self):
        assert {o.intent for o in MENU_OPTIONS} == set(ServiceIntent)
        assert {o.intent for o in DISASTER_OPTIONS} == set(DisasterIntent)

    def test_gap_in_numbering_rejected(self):
        broken = (MENU_OPTIONS[0], MENU_OPTIONS[2], MENU_OPTIONS[-1])
        with pytest.raises(ValueError, match="contiguous"):
            validate_catalog(menu=broken)

    def test_free_text_must_be_last(self):
        reordered = tuple(
            MenuOption(str(i + 1), o.labels, o.intent)
            for i, o in enumerate((MENU_OPTIONS[-1],) + MENU_OPTIONS[:-1])
        )
        with pytest.raises(ValueError, match="free-text"):
            validate_catalog(menu=reordered)

    def test_back_option_required(self):
        no_back = tuple(o for o in DISASTER_OPTIONS if o.intent != DisasterIntent.BACK)
        with pytest.raises(ValueError, match="back option"):
            validate_catalog(disaster=no_back)

    def test_missing_label_rejected(self):
        partial = (DisasterSubOption("1", {Language.ENGLISH: "Back"}, DisasterIntent.BACK),)
        with pytest.raises(ValueError, match="missing labels"):
            validate_catalog(disaster=partial)
