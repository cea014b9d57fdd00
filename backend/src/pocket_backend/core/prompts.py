from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .config import settings, resolve_project_path
from ..utils.templating import extract_parameters, fill_strict


log = logging.getLogger("pocket.core.prompts")

PROMPT_VARIABLES: dict[str, set[str]] = {
    "prompt_improvement_system": {"instruction"},
}

REQUIRED_PROMPTS = set(PROMPT_VARIABLES.keys())


@dataclass(frozen=True)
class PromptEntry:
    key: str
    template: str
    placeholders: list[str]


@dataclass(frozen=True)
class PromptCatalog:
    version: int
    entries: Dict[str, PromptEntry]


class PromptStore:
    """System prompts loaded from a YAML catalog, reloaded when the file changes."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._cache: PromptCatalog | None = None
        self._cache_mtime: float | None = None

    def get(self, key: str) -> PromptEntry:
        catalog = self._load_catalog()
        if key not in catalog.entries:
            raise KeyError(f"System prompt not found: {key}")
        return catalog.entries[key]

    def catalog(self) -> PromptCatalog:
        return self._load_catalog()

    def render(self, key: str, variables: Dict[str, Any]) -> str:
        entry = self.get(key)
        values = {name: str(value) for name, value in variables.items()}
        return fill_strict(entry.template, values, required=entry.placeholders)

    def _load_catalog(self) -> PromptCatalog:
        if not self.path.exists():
            raise FileNotFoundError(f"System prompts file not found: {self.path}")
        mtime = self.path.stat().st_mtime
        if self._cache is not None and self._cache_mtime == mtime:
            return self._cache
        raw = self._read_raw()
        catalog = self._parse_raw(raw)
        self._cache = catalog
        self._cache_mtime = mtime
        log.info("System prompts loaded (version=%s, count=%d)", catalog.version, len(catalog.entries))
        return catalog

    def _read_raw(self) -> Dict[str, Any]:
        with self.path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Invalid system prompts file (root is not a mapping).")
        return data

    def _parse_raw(self, raw: Dict[str, Any]) -> PromptCatalog:
        version = raw.get("version")
        if not isinstance(version, int):
            raise ValueError("Invalid system prompts file (missing version).")
        prompts = raw.get("prompts")
        if not isinstance(prompts, dict):
            raise ValueError("Invalid system prompts file (missing prompts).")

        entries = {key: _parse_entry(key, item) for key, item in prompts.items()}
        missing = sorted(REQUIRED_PROMPTS - entries.keys())
        if missing:
            raise ValueError(f"Required system prompts missing: {', '.join(missing)}")
        return PromptCatalog(version=version, entries=entries)


def _parse_entry(key: Any, item: Any) -> PromptEntry:
    if not isinstance(key, str) or not key.strip():
        raise ValueError("Invalid system prompt key.")
    if not isinstance(item, dict):
        raise ValueError(f"Invalid system prompt for '{key}'.")
    template = item.get("template")
    if not isinstance(template, str) or not template.strip():
        raise ValueError(f"Missing template for '{key}'.")

    placeholders = extract_parameters(template)
    # Catalog entries the app renders may only use the variables it supplies
    allowed = PROMPT_VARIABLES.get(key)
    unknown = [name for name in placeholders if allowed is not None and name not in allowed]
    if unknown:
        raise ValueError(f"System prompt '{key}' uses unknown variables: {', '.join(unknown)}")

    return PromptEntry(
        key=key,
        template=template,
        placeholders=placeholders,
    )


@lru_cache
def get_prompt_store() -> PromptStore:
    path = Path(resolve_project_path(settings.prompts_path))
    return PromptStore(path)
