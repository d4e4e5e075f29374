"""
Dialogue Controller — the WhatsApp conversation state machine.

Flow per inbound message:
  1. Slash commands (/help, /menu, /clear) bypass the state machine
  2. Load the session for the phone number
  3. Dispatch on session.state → (reply, next state)
  4. Record the turn (user then assistant) and persist state + history in ONE write
  5. Return the reply to the channel for delivery

States:
  initial → language_selection → menu_shown ⇄ disaster_submenu
                                      ↓
                                 free_text_mode

Any unexpected failure is caught once in handle_message and turned into
the fixed apology; nothing is persisted for that turn.
"""
from __future__ import annotations

import structlog
from dataclasses import dataclass
from typing import Optional

from core.engine import FreeTextBridge
from database.session_store import SessionStore
from dialogue.classifier import (
    classify_disaster_sub_option, classify_language_choice,
    classify_menu_selection, parse_command, should_show_menu,
)
from dialogue.composer import ResponseComposer
from models.schemas import (
    ChannelType, Command, DialogueState, DisasterIntent, ServiceIntent, Session,
)

logger = structlog.get_logger()


@dataclass
class TurnResult:
    reply: str
    state: DialogueState
    service_context: Optional[str] = None


class DialogueController:
    """
    Owns every state transition. Store, composer and bridge are injected so
    tests can swap any of them for doubles.
    """

    def __init__(self, sessions: SessionStore, composer: ResponseComposer,
                 bridge: FreeTextBridge):
        self.sessions = sessions
        self.composer = composer
        self.bridge = bridge

        self._state_handlers = {
            DialogueState.INITIAL: self._on_initial,
            DialogueState.LANGUAGE_SELECTION: self._on_language_selection,
            DialogueState.MENU_SHOWN: self._on_menu,
            DialogueState.FREE_TEXT_MODE: self._on_menu,
            DialogueState.DISASTER_SUBMENU: self._on_disaster_submenu,
        }

    # ── Entry point ───────────────────────────────────────────

    async def handle_message(self, phone: str, text: str) -> str:
        """Process one inbound message and return the reply. Never raises."""
        try:
            command = parse_command(text)
            if command is not None:
                return await self._handle_command(phone, command)

            session = await self.sessions.load(phone)
            previous = session.state
            result = await self._state_handlers[session.state](session, text)

            session.state = result.state
            if result.service_context is not None:
                session.service_context = result.service_context
            self.sessions.record_turn(session, text, result.reply)

            if result.state != previous:
                logger.info("dialogue_transition", phone=phone,
                            from_state=previous.value, to_state=result.state.value)

            try:
                await self.sessions.save(phone, session)
            except Exception as e:
                logger.error("session_save_failed", phone=phone, error=str(e))

            return result.reply

        except Exception as e:
            logger.error("message_handling_failed", phone=phone, error=str(e))
            return self.composer.apology()

    # ── Commands ──────────────────────────────────────────────

    async def _handle_command(self, phone: str, command: Command) -> str:
        logger.info("command_received", phone=phone, command=command.value)
        if command == Command.CLEAR:
            await self.sessions.clear(phone)
            return self.composer.clear_confirmation()

        session = await self.sessions.load(phone)
        return self.composer.main_menu(session.effective_language)

    # ── State handlers ────────────────────────────────────────

    async def _on_initial(self, session: Session, text: str) -> TurnResult:
        # A record whose state field was lost but whose language survived
        # carries on as if the menu had been shown.
        if session.history and session.language is not None:
            session.state = DialogueState.MENU_SHOWN
            return await self._on_menu(session, text)
        return TurnResult(self.composer.language_prompt(), DialogueState.LANGUAGE_SELECTION)

    async def _on_language_selection(self, session: Session, text: str) -> TurnResult:
        language = classify_language_choice(text)
        if language is None:
            return TurnResult(self.composer.language_prompt(), DialogueState.LANGUAGE_SELECTION)

        session.language = language
        logger.info("language_selected", language=language.value)
        return TurnResult(self.composer.main_menu(language), DialogueState.MENU_SHOWN)

    async def _on_menu(self, session: Session, text: str) -> TurnResult:
        """menu_shown and free_text_mode: menu pick, then trigger word, then free text."""
        language = session.effective_language

        option = classify_menu_selection(text)
        if option is not None:
            reply = self.composer.render_service(option.intent, language)
            if option.intent == ServiceIntent.DISASTER_MANAGEMENT:
                next_state = DialogueState.DISASTER_SUBMENU
            elif option.intent == ServiceIntent.FREE_TEXT:
                next_state = DialogueState.FREE_TEXT_MODE
            else:
                next_state = session.state
            return TurnResult(reply, next_state, service_context=option.intent.value)

        if should_show_menu(text):
            return TurnResult(self.composer.main_menu(language), session.state)

        return TurnResult(await self._free_text(session, text), session.state)

    async def _on_disaster_submenu(self, session: Session, text: str) -> TurnResult:
        language = session.effective_language

        option = classify_disaster_sub_option(text)
        if option is None:
            return TurnResult(self.composer.disaster_menu(language), DialogueState.DISASTER_SUBMENU)

        reply = self.composer.render_disaster(option.intent, language)
        if option.intent == DisasterIntent.BACK:
            return TurnResult(reply, DialogueState.MENU_SHOWN)
        return TurnResult(reply, DialogueState.DISASTER_SUBMENU,
                          service_context=f"disaster:{option.intent.value}")

    # ── Free text ─────────────────────────────────────────────

    async def _free_text(self, session: Session, text: str) -> str:
        reply = await self.bridge.generate(
            text, session.history_for_llm(), session.language, ChannelType.WHATSAPP,
        )
        if self.bridge.is_fallback(reply):
            return reply
        return self.composer.with_menu_reminder(reply, session.effective_language)
