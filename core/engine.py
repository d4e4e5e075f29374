"""
Free-Text Fallback Bridge — LLM-powered answers for anything the menus miss.

Takes the user's message, the session history and the chosen language and
asks the configured LLM (Anthropic or OpenAI) for a reply. Handles:
- System prompt construction (date/time, KMC-only policy, language protocol)
- The `kmc_context_lookup` retrieval tool over the static knowledge base
- A bounded tool-call loop (llm.max_steps rounds)
- Accumulating every generated text part into one reply
- Converting any failure into a fixed apology, never an exception
"""
from __future__ import annotations

import json
import structlog
from datetime import datetime
from typing import Any, Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from config.settings import LLMConfig, MunicipalityConfig, get_settings
from core.knowledge_base import CATEGORIES, KnowledgeBase, get_knowledge_base
from core.prompts import build_system_prompt
from models.schemas import ChannelType, Language

logger = structlog.get_logger()

FAILURE_MESSAGE = (
    "I'm having trouble processing your request. Please type 'menu' to see service "
    "options or contact KMC at 0231-2540291."
)
EMPTY_MESSAGE = (
    "I apologize, but I couldn't generate a proper response. Please try asking about "
    "KMC services or type 'menu' to see options."
)

LOOKUP_TOOL_NAME = "kmc_context_lookup"
LOOKUP_TOOL_DESCRIPTION = (
    "Access specific KMC (Kolhapur Municipal Corporation) information: step-by-step "
    "processes, form filling instructions, official portal navigation, and disaster "
    "management information (water levels, shelters, emergency contacts)."
)
LOOKUP_TOOL_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "category": {
            "type": "string",
            "enum": list(CATEGORIES),
            "description": "Category of KMC information to retrieve",
        },
        "subcategory": {
            "type": "string",
            "description": (
                "Specific subcategory within the category (e.g. 'disaster_management', "
                "'property_tax', 'water_supply', 'citizen_registration')"
            ),
        },
    },
    "required": ["category"],
}


class FreeTextBridge:
    """
    Generates free-text replies with a retrieval tool attached.
    The LLM client can be injected (tests); otherwise it is built lazily.
    """

    def __init__(
        self,
        llm: Optional[LLMConfig] = None,
        knowledge_base: Optional[KnowledgeBase] = None,
        municipality: Optional[MunicipalityConfig] = None,
        timezone: Optional[str] = None,
        client: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = get_settings() if (llm is None or municipality is None or timezone is None) else None
        self._llm = llm or settings.llm
        self._municipality = municipality or settings.municipality
        self._tz = ZoneInfo(timezone or settings.timezone)
        self._kb = knowledge_base or get_knowledge_base()
        self._client = client
        self._clock = clock or (lambda: datetime.now(self._tz))

    @property
    def provider(self) -> str:
        return self._llm.provider

    @property
    def is_openai(self) -> bool:
        return self._llm.provider == "openai"

    async def _get_client(self):
        if self._client is None:
            if self.is_openai:
                from openai import AsyncOpenAI
                self._client = AsyncOpenAI(api_key=self._llm.api_key or None)
            else:
                import anthropic
                self._client = anthropic.AsyncAnthropic(api_key=self._llm.api_key or None)
            logger.info("llm_client_initialized", provider=self._llm.provider,
                        model=self._llm.model)
        return self._client

    # ── Public API ────────────────────────────────────────────

    async def generate(
        self,
        user_message: str,
        history: Sequence[dict[str, Any]],
        language: Optional[Language],
        channel: ChannelType = ChannelType.WHATSAPP,
    ) -> str:
        """
        Return the model's reply verbatim, FAILURE_MESSAGE if the call
        raised, or EMPTY_MESSAGE if it produced no text.
        """
        system = build_system_prompt(language, self._clock(), self._municipality, channel)
        messages = self._build_messages(history, user_message)

        try:
            client = await self._get_client()
            if self.is_openai:
                text = await self._generate_openai(client, system, messages)
            else:
                text = await self._generate_anthropic(client, system, messages)
        except Exception as e:
            logger.error("llm_generation_failed", provider=self._llm.provider, error=str(e))
            return FAILURE_MESSAGE

        if not text or not text.strip():
            logger.warning("llm_generation_empty", provider=self._llm.provider)
            return EMPTY_MESSAGE
        return text

    @staticmethod
    def is_fallback(text: str) -> bool:
        return text in (FAILURE_MESSAGE, EMPTY_MESSAGE)

    def run_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        if name != LOOKUP_TOOL_NAME:
            return {"error": f"Unknown tool: {name}"}
        category = str(arguments.get("category", ""))
        subcategory = arguments.get("subcategory") or None
        result = self._kb.lookup(category, subcategory)
        logger.info("kb_tool_called", category=category, subcategory=subcategory,
                    found="error" not in result)
        return result

    # ── Providers ─────────────────────────────────────────────

    async def _generate_anthropic(self, client, system: str,
                                  messages: list[dict[str, Any]]) -> str:
        tools = [{
            "name": LOOKUP_TOOL_NAME,
            "description": LOOKUP_TOOL_DESCRIPTION,
            "input_schema": LOOKUP_TOOL_PARAMETERS,
        }]
        parts: list[str] = []

        for step in range(self._llm.max_steps):
            response = await client.messages.create(
                model=self._llm.model,
                max_tokens=self._llm.max_tokens,
                temperature=self._llm.temperature,
                system=system,
                tools=tools,
                messages=messages,
            )
            tool_results = []
            for block in response.content:
                if block.type == "text":
                    parts.append(block.text)
                elif block.type == "tool_use":
                    result = self.run_tool(block.name, block.input or {})
                    tool_results.append({
                        "type": "tool_result",
                        "tool_use_id": block.id,
                        "content": json.dumps(result, ensure_ascii=False),
                    })

            if response.stop_reason != "tool_use" or not tool_results:
                break
            messages = messages + [
                {"role": "assistant", "content": response.content},
                {"role": "user", "content": tool_results},
            ]
        else:
            logger.warning("llm_max_steps_reached", steps=self._llm.max_steps)

        return "".join(parts)

    async def _generate_openai(self, client, system: str,
                               messages: list[dict[str, Any]]) -> str:
        tools = [{
            "type": "function",
            "function": {
                "name": LOOKUP_TOOL_NAME,
                "description": LOOKUP_TOOL_DESCRIPTION,
                "parameters": LOOKUP_TOOL_PARAMETERS,
            },
        }]
        oai_messages: list[dict[str, Any]] = [{"role": "system", "content": system}] + messages
        parts: list[str] = []

        for step in range(self._llm.max_steps):
            response = await client.chat.completions.create(
                model=self._llm.model,
                max_tokens=self._llm.max_tokens,
                temperature=self._llm.temperature,
                messages=oai_messages,
                tools=tools,
            )
            message = response.choices[0].message
            if message.content:
                parts.append(message.content)
            if not message.tool_calls:
                break

            oai_messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {"id": tc.id, "type": "function",
                     "function": {"name": tc.function.name, "arguments": tc.function.arguments}}
                    for tc in message.tool_calls
                ],
            })
            for tc in message.tool_calls:
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except ValueError:
                    arguments = {}
                oai_messages.append({
                    "role": "tool",
                    "tool_call_id": tc.id,
                    "content": json.dumps(self.run_tool(tc.function.name, arguments),
                                          ensure_ascii=False),
                })
        else:
            logger.warning("llm_max_steps_reached", steps=self._llm.max_steps)

        return "".join(parts)

    # ── Message construction ──────────────────────────────────

    @staticmethod
    def _build_messages(history: Sequence[dict[str, Any]],
                        user_message: str) -> list[dict[str, Any]]:
        """History as alternating user/assistant turns, ending with the new message."""
        messages: list[dict[str, Any]] = []
        for entry in list(history) + [{"role": "user", "content": user_message}]:
            role = entry.get("role")
            content = entry.get("content") or ""
            if role not in ("user", "assistant") or not content:
                continue
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] += "\n\n" + content
            else:
                messages.append({"role": role, "content": content})

        if messages and messages[0]["role"] == "assistant":
            messages.insert(0, {"role": "user", "content": "[Conversation started]"})
        return messages
