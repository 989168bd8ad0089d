from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jinja2 import Environment, Template, TemplateSyntaxError

logger = logging.getLogger("sticker_clone_bot")

LANGUAGE_TITLE_ID = "language_title"


class Localization:
    """String table loaded from a CSV file: an ``id`` column plus one column per language."""

    def __init__(self) -> None:
        self._entries: Dict[str, Dict[str, str]] = {}
        self._compiled: Dict[tuple[str, str], Template] = {}
        self._env = Environment(autoescape=False)

    def load(self, path: str | Path) -> None:
        entries: Dict[str, Dict[str, str]] = {}
        with Path(path).open("r", encoding="utf-8-sig", newline="") as handle:
            for row in csv.DictReader(handle):
                entry_id = (row.get("id") or "").strip().lower()
                if not entry_id:
                    continue
                entries[entry_id] = {
                    code.strip(): value.strip()
                    for code, value in row.items()
                    if code and code.strip() and code.strip() != "id" and value and value.strip()
                }
        self.load_entries(entries)
        logger.info("Loaded %s localization entries for %s languages", len(entries), len(self.supported_languages()))

    def load_entries(self, entries: Mapping[str, Mapping[str, str]]) -> None:
        self._entries = {key.lower(): dict(values) for key, values in entries.items()}
        self._compiled.clear()

    def is_supported_language(self, code: str) -> bool:
        return bool(code) and code in self._entries.get(LANGUAGE_TITLE_ID, {})

    def supported_languages(self) -> Dict[str, str]:
        return dict(self._entries.get(LANGUAGE_TITLE_ID, {}))

    def raw(self, language_code: str, template_id: str) -> str | None:
        return self._entries.get(template_id.lower(), {}).get(language_code)

    def render(self, language_code: str, template_id: str, variables: Mapping[str, Any] | None = None) -> str:
        source = self.raw(language_code, template_id)
        if not source:
            return f"<pre>{template_id.upper()}</pre>"
        key = (template_id.lower(), language_code)
        template = self._compiled.get(key)
        if template is None:
            template = self._env.from_string(source)
            self._compiled[key] = template
        return template.render(**dict(variables or {}))

    def check_templates(self) -> List[str]:
        errors: List[str] = []
        for entry_id, values in self._entries.items():
            for code, source in values.items():
                try:
                    self._env.parse(source)
                except TemplateSyntaxError as exc:
                    errors.append(f"{entry_id}[{code}]:{exc.lineno} - {exc.message}")
        return errors

    def languages_keyboard(self) -> Dict[str, Any]:
        keyboard = [
            [{"text": title, "callback_data": f"set_language:{code}"}]
            for code, title in self.supported_languages().items()
        ]
        return {"inline_keyboard": keyboard}
