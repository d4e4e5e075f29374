"""
Knowledge Base — read-only KMC facts queried by symbolic path.

Loaded once from knowledge_base.yaml. The LLM reaches it through the
`kmc_context_lookup` tool (see core/engine.py); the composer reads the
water-level bulletin dates from it.
"""
from __future__ import annotations

import copy
import structlog
from pathlib import Path
from typing import Any, Optional

import yaml

logger = structlog.get_logger()

DEFAULT_PATH = Path(__file__).parent / "knowledge_base.yaml"

CATEGORIES: tuple[str, ...] = ("departments", "general_process", "payment_info")


class KnowledgeBase:

    def __init__(self, data: dict[str, Any]):
        missing = [c for c in CATEGORIES if c not in data]
        if missing:
            raise ValueError(f"Knowledge base missing categories: {missing}")
        self._data = data

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "KnowledgeBase":
        path = Path(path or DEFAULT_PATH)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        kb = cls(data)
        logger.info("knowledge_base_loaded", path=str(path),
                    departments=len(data.get("departments", {})))
        return kb

    def lookup(self, category: str, subcategory: Optional[str] = None) -> dict[str, Any]:
        """
        Return {"category", "subcategory", "data"} for a known subcategory,
        {"category", "data"} for the whole category when the subcategory is
        absent or unknown, or {"error": "Category not found"}.
        """
        category_data = self._data.get(category)
        if category_data is None:
            logger.debug("kb_lookup_miss", category=category)
            return {"error": "Category not found"}

        if subcategory and isinstance(category_data, dict) and subcategory in category_data:
            return {
                "category": category,
                "subcategory": subcategory,
                "data": copy.deepcopy(category_data[subcategory]),
            }
        return {"category": category, "data": copy.deepcopy(category_data)}

    def get(self, *path: str, default: Any = None) -> Any:
        node: Any = self._data
        for part in path:
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # ── Convenience accessors ─────────────────────────────────

    @property
    def water_level_info(self) -> dict[str, Any]:
        return self.get("departments", "disaster_management", "water_level_info", default={})


_instance: Optional[KnowledgeBase] = None


def get_knowledge_base() -> KnowledgeBase:
    global _instance
    if _instance is None:
        _instance = KnowledgeBase.from_yaml()
    return _instance
