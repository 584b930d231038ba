"""Local JSON store for receipt templates and their in-memory cache."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from receipt_core.templates.loader import load_template
from receipt_core.templates.models import Template

logger = logging.getLogger("receipt.templates")

DEFAULT_CACHE_TTL_SECONDS = 300.0


class TemplateStore:
    """Persist raw templates keyed by template id in a JSON file."""

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path

    @property
    def path(self) -> Path:
        return self._store_path

    def get(self, template_id: str) -> dict[str, Any] | None:
        return self.load_all().get(template_id)

    def load_all(self) -> dict[str, dict[str, Any]]:
        if not self._store_path.exists():
            return {}

        try:
            raw = json.loads(self._store_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid template store JSON: {self._store_path}") from exc

        if not isinstance(raw, dict):
            raise ValueError(f"Template store must contain an object: {self._store_path}")
        return raw

    def save(self, template_id: str, template: dict[str, Any]) -> None:
        templates = self.load_all()
        templates[template_id] = template
        self.save_all(templates)

    def save_all(self, templates: dict[str, dict[str, Any]]) -> None:
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._store_path.with_suffix(f"{self._store_path.suffix}.tmp")
        temp_path.write_text(
            json.dumps(templates, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        temp_path.replace(self._store_path)

    def delete(self, template_id: str) -> bool:
        templates = self.load_all()
        if template_id not in templates:
            return False
        del templates[template_id]
        self.save_all(templates)
        return True


class TemplateCache:
    """Expiring template id -> template map.

    Expiry is checked lazily on ``get`` and clears every entry at once. The
    expiry window starts with the first ``put`` after a clear.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, Template] = {}
        self._started_at: float | None = None

    def get(self, template_id: str) -> Template | None:
        now = self._clock()
        if self._started_at is None or now - self._started_at > self._ttl_seconds:
            self._entries.clear()
            self._started_at = None
            return None
        return self._entries.get(template_id)

    def put(self, template_id: str, template: Template) -> None:
        if self._started_at is None:
            self._started_at = self._clock()
        self._entries[template_id] = template

    def clear(self) -> None:
        self._entries.clear()
        self._started_at = None

    def __len__(self) -> int:
        return len(self._entries)


class TemplateRepository:
    """Cache-first template lookup backed by the authoritative store."""

    def __init__(self, store: TemplateStore, cache: TemplateCache | None = None) -> None:
        self._store = store
        self._cache = cache if cache is not None else TemplateCache()

    def get(self, template_id: str) -> Template | None:
        """Return the loaded template, or None when the store has no such id.

        Raises:
            TemplateLoadError: When the stored template is malformed.
        """

        cached = self._cache.get(template_id)
        if cached is not None:
            return cached

        raw = self._store.get(template_id)
        if raw is None:
            return None

        template = load_template(raw)
        self._cache.put(template_id, template)
        logger.debug("template %s loaded from %s", template_id, self._store.path)
        return template

    def save(self, template_id: str, raw: dict[str, Any]) -> Template:
        """Validate and persist a full replacement of one template."""

        template = load_template(raw)
        self._store.save(template_id, raw)
        self._cache.clear()
        return template

    def list_ids(self) -> list[str]:
        return sorted(self._store.load_all())


class EventBindings:
    """Persist event name -> template id bindings in a JSON file."""

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path

    def resolve(self, event_name: str) -> str | None:
        return self._read().get(event_name)

    def bind(self, event_name: str, template_id: str) -> None:
        bindings = self._read()
        bindings[event_name] = template_id
        self._write(bindings)

    def unbind(self, event_name: str) -> bool:
        bindings = self._read()
        if event_name not in bindings:
            return False
        del bindings[event_name]
        self._write(bindings)
        return True

    def list_all(self) -> dict[str, str]:
        return dict(sorted(self._read().items()))

    def _read(self) -> dict[str, str]:
        if not self._store_path.exists():
            return {}
        try:
            raw = json.loads(self._store_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid bindings JSON: {self._store_path}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Bindings file must contain an object: {self._store_path}")
        return {str(key): str(value) for key, value in raw.items()}

    def _write(self, bindings: dict[str, str]) -> None:
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._store_path.with_suffix(f"{self._store_path.suffix}.tmp")
        temp_path.write_text(
            json.dumps(bindings, sort_keys=True, separators=(",", ":"), ensure_ascii=False),
            encoding="utf-8",
        )
        temp_path.replace(self._store_path)
