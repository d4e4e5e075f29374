"""
FastAPI Application — WhatsApp webhook + web chat endpoint.

Provides:
- POST /webhooks/whatsapp: Twilio inbound messages → dialogue controller → Twilio reply
- GET  /webhooks/whatsapp: webhook status payload
- POST /api/chat: stateless web widget chat (client sends the transcript)
- GET  /health: store backend and LLM provider health
"""
from __future__ import annotations

import structlog
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from config.settings import Settings, get_settings
from core.engine import FreeTextBridge
from core.knowledge_base import get_knowledge_base
from channels.base import ChannelError, MessageSender
from channels.whatsapp_adapter import TwilioWhatsAppSender, parse_inbound
from database.session_store import SessionStore
from database.store_base import BaseKeyValueStore
from database.store_factory import create_kv_store
from dialogue.classifier import detect_language_preference
from dialogue.composer import ResponseComposer
from dialogue.controller import DialogueController
from models.schemas import ChannelType, TurnRole, WebChatRequest

logger = structlog.get_logger()


# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

def build_controller(
    settings: Settings,
    bridge: FreeTextBridge,
    kv: Optional[BaseKeyValueStore] = None,
) -> DialogueController:
    kv = kv or create_kv_store({
        "backend": settings.session.backend,
        "redis_url": settings.session.redis_url,
    })
    sessions = SessionStore(
        kv,
        ttl_seconds=settings.session.ttl_seconds,
        history_limit=settings.session.history_limit,
        key_prefix=settings.session.key_prefix,
    )
    composer = ResponseComposer.from_yaml(get_knowledge_base())
    return DialogueController(sessions, composer, bridge)


def create_app(
    settings: Optional[Settings] = None,
    controller: Optional[DialogueController] = None,
    sender: Optional[MessageSender] = None,
    bridge: Optional[FreeTextBridge] = None,
) -> FastAPI:
    settings = settings or get_settings()
    bridge = bridge or FreeTextBridge(
        llm=settings.llm,
        knowledge_base=get_knowledge_base(),
        municipality=settings.municipality,
        timezone=settings.timezone,
    )
    controller = controller or build_controller(settings, bridge)
    sender = sender or TwilioWhatsAppSender(
        account_sid=settings.whatsapp.account_sid,
        auth_token=settings.whatsapp.auth_token,
        from_number=settings.whatsapp.from_number,
        max_message_chars=settings.whatsapp.max_message_chars,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("kmc_assistant_started",
                    store_backend=controller.sessions.kv.backend_name,
                    llm_provider=settings.llm.provider,
                    whatsapp_enabled=settings.whatsapp.enabled)
        yield
        await sender.shutdown()
        await controller.sessions.kv.close()
        logger.info("kmc_assistant_stopped")

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=f"Multilingual WhatsApp and web assistant for {settings.municipality.name}",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.controller = controller
    app.state.sender = sender
    app.state.bridge = bridge

    # ══════════════════════════════════════════════════════════
    #  HEALTH
    # ══════════════════════════════════════════════════════════

    @app.get("/health")
    async def health():
        store = await controller.sessions.kv.health_check()
        return {
            "status": "healthy" if store.get("healthy") else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "store": store,
            "llm_provider": settings.llm.provider,
            "whatsapp": await sender.health_check(),
        }

    # ══════════════════════════════════════════════════════════
    #  WEBHOOKS — WhatsApp
    # ══════════════════════════════════════════════════════════

    @app.get("/webhooks/whatsapp")
    async def whatsapp_status():
        return {
            "status": f"{settings.municipality.short_name} WhatsApp webhook is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.municipality.name,
        }

    @app.post("/webhooks/whatsapp")
    async def whatsapp_webhook(request: Request):
        """Receive a Twilio WhatsApp message, reply through the sender."""
        form = await request.form()
        inbound = parse_inbound(form)
        if inbound is None:
            logger.warning("whatsapp_webhook_missing_fields")
            raise HTTPException(400, "Missing required fields")

        logger.info("whatsapp_message_received", phone=inbound.phone,
                    profile_name=inbound.sender_name or None)

        reply = await controller.handle_message(inbound.phone, inbound.content)

        if not settings.whatsapp.enabled:
            logger.info("whatsapp_delivery_disabled", phone=inbound.phone)
            return {"status": "success"}

        # Acknowledge Twilio even when delivery fails, so it does not redeliver
        try:
            await sender.send(inbound.phone, reply)
        except ChannelError as e:
            logger.error("whatsapp_reply_failed", phone=inbound.phone,
                         error=str(e), retryable=e.retryable)

        return {"status": "success"}

    # ══════════════════════════════════════════════════════════
    #  WEB CHAT
    # ══════════════════════════════════════════════════════════

    @app.post("/api/chat")
    async def web_chat(req: WebChatRequest):
        if not req.messages or req.messages[-1].role != TurnRole.USER:
            raise HTTPException(400, "Last message must be from the user")

        *previous, latest = req.messages
        history = [{"role": m.role.value, "content": m.content} for m in previous]
        language = detect_language_preference([m.content for m in req.messages])

        reply = await bridge.generate(latest.content, history, language, ChannelType.WEB)
        return {"reply": reply}

    return app


app = create_app()


# ══════════════════════════════════════════════════════════════
#  Entry Point
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
