"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/exchange.py
Version:        1.0.0
Description:    Backup export and import. Exports the category tree as a
                versioned JSON payload; imports current payloads and legacy
                flat page lists (upgraded through the migration engine).
                A rejected import never touches the document.
------------------------------------------------------------------------------
"""

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, ValidationError

from core.document import DocumentModel
from core.errors import InvalidImport
from core.logger import get_logger
from core.migration import MigrationEngine
from core.models.document import Category, SpellBookModel

logger = get_logger("exchange")

EXPORT_FORMAT_VERSION: int = 2


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ExportPayload(SpellBookModel):
    """Portable backup container."""
    version: int = EXPORT_FORMAT_VERSION
    export_date: str = Field(default_factory=_now_iso)
    categories: List[Category] = Field(default_factory=list)


class ExchangeService:
    """Builds backup payloads and turns backup files back into categories."""

    FILENAME_PREFIX = "spell-book-backup"

    def __init__(self, engine: Optional[MigrationEngine] = None) -> None:
        self.engine = engine or MigrationEngine()

    @classmethod
    def backup_filename(cls, timestamp_ms: Optional[int] = None) -> str:
        """Default file name for an export, stamped with epoch milliseconds."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"{cls.FILENAME_PREFIX}-{timestamp_ms}.json"

    @staticmethod
    def export_payload(document: DocumentModel) -> ExportPayload:
        categories = [c.model_copy(deep=True) for c in document.categories]
        return ExportPayload(categories=categories)

    def save_to_file(self, document: DocumentModel, target: Union[str, Path]) -> Path:
        """Writes a standalone JSON backup file."""
        target = Path(target)
        payload = self.export_payload(document)
        with open(target, "w", encoding="utf-8") as f:
            f.write(json.dumps(payload.model_dump(by_alias=True, mode="json"), indent=2, ensure_ascii=False))
        logger.info(f"Exported {len(payload.categories)} categories to {target}")
        return target

    def parse_import(self, data: Any) -> List[Category]:
        """
        Validates a decoded backup and returns its categories.

        Accepts `{categories: [...]}` (any export version) and the legacy
        `{pages: [...]}` format, which becomes a single migrated category.

        Raises:
            InvalidImport: The payload matches neither shape or does not
                validate.
        """
        if not isinstance(data, dict):
            raise InvalidImport("Invalid backup file format.")

        if isinstance(data.get("categories"), list):
            if not data["categories"]:
                raise InvalidImport("Backup contains no categories.")
            raw: Dict[str, Any] = {"categories": data["categories"]}
        elif isinstance(data.get("pages"), list):
            raw = {"pages": data["pages"]}
        else:
            raise InvalidImport("Invalid backup file format.")

        migrated = self.engine.migrate(raw)
        if not migrated.get("categories"):
            raise InvalidImport("Backup contains no usable categories.")
        try:
            return [Category.model_validate(c) for c in migrated["categories"]]
        except ValidationError as e:
            raise InvalidImport(f"Backup failed validation: {e.errors()[0].get('msg')}") from e

    def load_from_file(self, path: Union[str, Path]) -> List[Category]:
        """Reads and validates a backup file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidImport(f"Error reading backup: {e}") from e
        return self.parse_import(data)

    def import_into(self, document: DocumentModel, path: Union[str, Path]) -> int:
        """
        Replaces the document's categories with those of a backup file.
        Global settings are kept.

        Returns:
            The number of imported categories.
        """
        categories = self.load_from_file(path)
        document.settings.categories = categories
        repairs = document.ensure_invariants()
        if repairs:
            logger.debug(f"Import repairs: {repairs}")
        logger.info(f"Imported {len(categories)} categories from {path}")
        return len(categories)
