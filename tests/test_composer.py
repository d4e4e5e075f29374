"""
Tests for the response composer and its message table.
"""
import copy
import pytest

from dialogue.catalog import MENU_OPTIONS
from dialogue.composer import ResponseComposer, validate_messages
from models.schemas import DisasterIntent, Language, ServiceIntent

PORTAL_URL = "https://web.kolhapurcorporation.gov.in/citizen"


class TestMenus:
    @pytest.mark.parametrize("language", list(Language))
    def test_main_menu_lists_every_option(self, composer, language):
        menu = composer.main_menu(language)
        for option in MENU_OPTIONS:
            assert f"*{option.number}* - {option.label(language)}" in menu
        assert "(1-9)" in menu

    def test_main_menu_has_no_reminder(self, composer):
        assert composer.menu_reminder(Language.ENGLISH) not in composer.main_menu(Language.ENGLISH)

    def test_disaster_menu_has_seven_entries(self, composer):
        menu = composer.disaster_menu(Language.ENGLISH)
        assert "*7* - Back to Main Menu" in menu
        assert "(1-7)" in menu

    def test_language_prompt_offers_three_languages(self, composer):
        prompt = composer.language_prompt()
        assert "English" in prompt and "मराठी" in prompt and "हिंदी" in prompt


class TestServiceRendering:
    @pytest.mark.parametrize("language", list(Language))
    @pytest.mark.parametrize("intent", [
        ServiceIntent.PROPERTY_TAX, ServiceIntent.WATER_SUPPLY,
        ServiceIntent.BIRTH_CERTIFICATE, ServiceIntent.DEATH_CERTIFICATE,
        ServiceIntent.BUSINESS_LICENSE, ServiceIntent.COMPLAINT, ServiceIntent.CONTACT,
    ])
    def test_service_info_ends_with_main_reminder(self, composer, intent, language):
        reply = composer.render_service(intent, language)
        assert reply.endswith(composer.menu_reminder(language))
        assert "{" not in reply

    def test_property_tax_contains_portal(self, composer):
        assert PORTAL_URL in composer.render_service(ServiceIntent.PROPERTY_TAX, Language.ENGLISH)

    def test_certificate_kind_substituted(self, composer):
        birth = composer.render_service(ServiceIntent.BIRTH_CERTIFICATE, Language.ENGLISH)
        death = composer.render_service(ServiceIntent.DEATH_CERTIFICATE, Language.ENGLISH)
        assert "Birth Certificate Application" in birth
        assert "Parents' Aadhar cards" in birth
        assert "Death Certificate Application" in death
        assert "Deceased person's Aadhar" in death

    def test_disaster_and_free_text_render_bare(self, composer):
        assert composer.render_service(ServiceIntent.DISASTER_MANAGEMENT, Language.HINDI) == \
            composer.disaster_menu(Language.HINDI)
        assert composer.render_service(ServiceIntent.FREE_TEXT, Language.HINDI) == \
            composer.free_text_prompt(Language.HINDI)

    def test_rendering_is_deterministic(self, composer):
        assert composer.render_service(ServiceIntent.CONTACT, Language.MARATHI) == \
            composer.render_service(ServiceIntent.CONTACT, Language.MARATHI)


class TestDisasterRendering:
    @pytest.mark.parametrize("language", list(Language))
    @pytest.mark.parametrize("intent", [i for i in DisasterIntent if i != DisasterIntent.BACK])
    def test_sub_service_ends_with_disaster_reminder(self, composer, intent, language):
        reply = composer.render_disaster(intent, language)
        assert reply.endswith(composer.disaster_reminder(language))

    def test_water_level_uses_bulletin_values(self, composer, knowledge_base):
        reply = composer.render_disaster(DisasterIntent.WATER_LEVEL, Language.ENGLISH)
        info = knowledge_base.water_level_info
        assert info["date"] in reply
        assert info["discharge"] in reply
        assert "{" not in reply

    def test_back_is_main_menu(self, composer):
        assert composer.render_disaster(DisasterIntent.BACK, Language.MARATHI) == \
            composer.main_menu(Language.MARATHI)


class TestMessageTable:
    @pytest.fixture
    def messages(self):
        import yaml
        from dialogue.composer import DEFAULT_MESSAGES_PATH
        with open(DEFAULT_MESSAGES_PATH, encoding="utf-8") as f:
            return yaml.safe_load(f)

    def test_shipped_table_is_complete(self, messages):
        validate_messages(messages)

    def test_missing_translation_rejected(self, messages, knowledge_base):
        broken = copy.deepcopy(messages)
        del broken["services"]["complaint"]["hindi"]
        with pytest.raises(ValueError, match="services.complaint.hindi"):
            ResponseComposer(broken, knowledge_base)

    def test_missing_certificate_documents_rejected(self, messages):
        broken = copy.deepcopy(messages)
        del broken["certificate_kinds"]["death_certificate"]["marathi"]["documents"]
        with pytest.raises(ValueError, match="certificate_kinds.death_certificate.marathi"):
            validate_messages(broken)

    def test_missing_disaster_text_rejected(self, messages):
        broken = copy.deepcopy(messages)
        del broken["disaster"]["shelters"]
        with pytest.raises(ValueError, match="disaster.shelters.english"):
            validate_messages(broken)
