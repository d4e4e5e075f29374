"""
Configuration loader for the KMC citizen assistant.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class LLMConfig:
    provider: str = "anthropic"          # "anthropic" | "openai"
    model: str = "claude-sonnet-4-20250514"
    temperature: float = 0.3
    max_tokens: int = 1024
    max_steps: int = 10                  # tool-call rounds per reply
    api_key: str = ""


@dataclass
class SessionConfig:
    backend: str = "memory"              # "memory" | "redis"
    redis_url: str = "redis://localhost:6379"
    ttl_seconds: int = 3600
    history_limit: int = 20
    key_prefix: str = ""


@dataclass
class WhatsAppConfig:
    enabled: bool = True
    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""                # e.g. "whatsapp:+14155238886"
    max_message_chars: int = 1500


@dataclass
class MunicipalityConfig:
    name: str = "Kolhapur Municipal Corporation"
    short_name: str = "KMC"
    helpline: str = "0231-2540291"
    email: str = "commissionerkmc@rediffmail.com"
    portal_url: str = "https://web.kolhapurcorporation.gov.in/citizen"
    city: str = "Kolhapur"


@dataclass
class Settings:
    app_name: str = "KMC Citizen Assistant"
    debug: bool = False
    timezone: str = "Asia/Kolkata"
    llm: LLMConfig = field(default_factory=LLMConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)
    municipality: MunicipalityConfig = field(default_factory=MunicipalityConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _unresolved(value: Any) -> Any:
    """Treat a ${VAR} left in place (variable not set) as empty."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return ""
    return value


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "KMC_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)
        settings.timezone = raw.get("timezone", settings.timezone)

        if "llm" in raw:
            llm = raw["llm"]
            settings.llm = LLMConfig(
                provider=llm.get("provider", "anthropic"),
                model=llm.get("model", settings.llm.model),
                temperature=llm.get("temperature", 0.3),
                max_tokens=llm.get("max_tokens", 1024),
                max_steps=llm.get("max_steps", 10),
                api_key=_unresolved(llm.get("api_key", "")),
            )

        if "session" in raw:
            s = raw["session"]
            settings.session = SessionConfig(
                backend=s.get("backend", "memory"),
                redis_url=_unresolved(s.get("redis_url", "")) or "redis://localhost:6379",
                ttl_seconds=int(s.get("ttl_seconds", 3600)),
                history_limit=int(s.get("history_limit", 20)),
                key_prefix=s.get("key_prefix", "") or "",
            )

        if "whatsapp" in raw:
            wa = raw["whatsapp"]
            settings.whatsapp = WhatsAppConfig(
                enabled=wa.get("enabled", True),
                account_sid=_unresolved(wa.get("account_sid", "")),
                auth_token=_unresolved(wa.get("auth_token", "")),
                from_number=_unresolved(wa.get("from_number", "")),
                max_message_chars=int(wa.get("max_message_chars", 1500)),
            )

        if "municipality" in raw:
            m = raw["municipality"]
            defaults = MunicipalityConfig()
            settings.municipality = MunicipalityConfig(
                name=m.get("name", defaults.name),
                short_name=m.get("short_name", defaults.short_name),
                helpline=m.get("helpline", defaults.helpline),
                email=m.get("email", defaults.email),
                portal_url=m.get("portal_url", defaults.portal_url),
                city=m.get("city", defaults.city),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
