"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/migration.py
Version:        1.0.0
Description:    Versioned schema migration for the persisted settings blob.
                Upgrades settings of any historic shape into the current one
                through an ordered list of (precondition, transform) stages.
                Running the engine on already-current data is a no-op.
------------------------------------------------------------------------------
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from core.errors import MigrationUnrecognizedShape
from core.logger import get_logger, log_migration_stage
from core.models.document import (
    DEFAULT_ICON,
    SCHEMA_VERSION,
    SpellBookSettings,
    default_settings_blob,
    default_window_state_blob,
)

logger = get_logger("migration")

MIGRATED_CATEGORY_ID = "migrated-cat"
MIGRATED_CATEGORY_NAME = "Spells"

# Window/focus fields that lived at the root before windows were per category
LEGACY_ROOT_WINDOW_KEYS = (
    "activeCategoryId",
    "activeEntryId",
    "activePageIndex",
    "activePageId",
    "isOpen",
    "top",
    "left",
    "width",
    "height",
)
LEGACY_GEOMETRY_KEYS = ("top", "left", "width", "height")

MAX_REPAIR_ROUNDS = 5


@dataclass(frozen=True)
class MigrationStage:
    """One step of the upgrade chain. `apply` mutates the working copy in place."""
    name: str
    applies: Callable[[Dict[str, Any]], bool]
    apply: Callable[[Dict[str, Any]], None]


# --- Helpers -----------------------------------------------------------------

def _legacy_pages_to_entries(pages: List[Any], prefix: str) -> List[Dict[str, Any]]:
    """Wraps each legacy page into a single-page entry, keeping its text verbatim."""
    entries: List[Dict[str, Any]] = []
    used: set = set()
    for i, page in enumerate(pages):
        if isinstance(page, dict):
            raw_id = page.get("id")
            name = page.get("name")
            content = page.get("content", "")
        else:
            raw_id, name, content = None, None, page

        entry_id = str(raw_id) if raw_id not in (None, "") else ""
        if not entry_id or entry_id in used:
            entry_id = _unique_id(f"{prefix}-entry-{i + 1}", used)
        used.add(entry_id)

        entries.append({
            "id": entry_id,
            "name": str(name) if name else f"Page {i + 1}",
            "pages": [{"content": "" if content is None else str(content)}],
        })
    return entries


def _unique_id(candidate: str, used: set) -> str:
    result = candidate
    n = 2
    while result in used:
        result = f"{candidate}-{n}"
        n += 1
    return result


def _first_entry_id(category: Dict[str, Any]) -> Optional[str]:
    entries = category.get("entries")
    if isinstance(entries, list) and entries and isinstance(entries[0], dict):
        return entries[0].get("id")
    return None


def _has_entry(category: Dict[str, Any], entry_id: Any) -> bool:
    entries = category.get("entries")
    if not isinstance(entries, list) or entry_id is None:
        return False
    return any(isinstance(e, dict) and e.get("id") == entry_id for e in entries)


# --- Stage 1: categories with flat pages -> categories with entries ----------

def _is_flat_category(category: Any) -> bool:
    return isinstance(category, dict) and isinstance(category.get("pages"), list) and "entries" not in category


def _has_flat_categories(blob: Dict[str, Any]) -> bool:
    categories = blob.get("categories")
    return isinstance(categories, list) and any(_is_flat_category(c) for c in categories)


def _flat_pages_to_entries(blob: Dict[str, Any]) -> None:
    for index, category in enumerate(blob["categories"]):
        if not _is_flat_category(category):
            continue
        prefix = str(category.get("id") or f"cat-{index + 1}")
        category["entries"] = _legacy_pages_to_entries(category.pop("pages"), prefix)

    # The active page pointer becomes the active entry pointer (still global here)
    if "activePageId" in blob:
        legacy_active = blob.pop("activePageId")
        blob["activeEntryId"] = None if legacy_active is None else str(legacy_active)
    blob["activePageIndex"] = 0
    blob["bookModeEnabled"] = True


# --- Stage 2: bare page list -> one category ---------------------------------

def _has_root_pages(blob: Dict[str, Any]) -> bool:
    return isinstance(blob.get("pages"), list) and "categories" not in blob


def _pages_to_categories(blob: Dict[str, Any]) -> None:
    entries = _legacy_pages_to_entries(blob.pop("pages"), MIGRATED_CATEGORY_ID)
    blob["categories"] = [{
        "id": MIGRATED_CATEGORY_ID,
        "name": MIGRATED_CATEGORY_NAME,
        "entries": entries,
    }]
    blob["activeCategoryId"] = MIGRATED_CATEGORY_ID
    legacy_active = blob.pop("activePageId", None)
    if legacy_active is not None and any(e["id"] == str(legacy_active) for e in entries):
        blob["activeEntryId"] = str(legacy_active)
    else:
        blob["activeEntryId"] = entries[0]["id"] if entries else None
    blob["activePageIndex"] = 0
    blob["bookModeEnabled"] = True


# --- Stage 3: global window state -> per-category window state ---------------

def _has_global_window_state(blob: Dict[str, Any]) -> bool:
    return any(key in blob for key in LEGACY_ROOT_WINDOW_KEYS)


def _global_to_category_window_state(blob: Dict[str, Any]) -> None:
    categories = blob.get("categories")
    categories = [c for c in categories if isinstance(c, dict)] if isinstance(categories, list) else []

    # The legacy single window showed the named category, or the first one
    active_id = blob.get("activeCategoryId")
    active = next((c for c in categories if c.get("id") == active_id), None)
    if active is None and categories:
        active = categories[0]

    for category in categories:
        if isinstance(category.get("windowState"), dict):
            continue
        state = default_window_state_blob()
        state["activeEntryId"] = _first_entry_id(category)

        if category is active:
            state["isOpen"] = bool(blob.get("isOpen", False))
            for key in LEGACY_GEOMETRY_KEYS:
                if blob.get(key) is not None:
                    state[key] = blob[key]
            legacy_entry = blob.get("activeEntryId")
            if _has_entry(category, legacy_entry):
                state["activeEntryId"] = legacy_entry
                state["activePageIndex"] = blob.get("activePageIndex") or 0

        category["windowState"] = state

    for key in LEGACY_ROOT_WINDOW_KEYS:
        blob.pop(key, None)


# --- Stage 4: default backfill -----------------------------------------------

def _fold_legacy_background(holder: Dict[str, Any], fix: bool) -> List[str]:
    """Legacy flat keys (background url string + backgroundPos/backgroundBlur) -> Background."""
    gaps: List[str] = []
    url = holder.get("background")
    has_flat = isinstance(url, str) or "backgroundPos" in holder or "backgroundBlur" in holder
    if not has_flat:
        return gaps
    gaps.append("legacy background")
    if fix:
        pos = holder.pop("backgroundPos", None)
        blur = holder.pop("backgroundBlur", None)
        if isinstance(url, str):
            if url:
                holder["background"] = {
                    "url": url,
                    "position": pos or "50% 50%",
                    "blurRadius": 15 if blur is None else blur,
                }
            else:
                holder["background"] = None
    return gaps


def _backfill(blob: Dict[str, Any], fix: bool) -> List[str]:
    """
    Walks the blob and collects every gap against the current schema.
    With fix=True each gap is filled as it is found. The predicate and the
    transform share this walker so they can never disagree.
    """
    gaps: List[str] = []

    for key, value in default_settings_blob().items():
        if key not in blob:
            gaps.append(f"missing '{key}'")
            if fix:
                blob[key] = copy.deepcopy(value)

    version = blob.get("schemaVersion")
    if not isinstance(version, int) or version < SCHEMA_VERSION:
        gaps.append("schema version")
        if fix:
            blob["schemaVersion"] = SCHEMA_VERSION

    categories = blob.get("categories")
    if not isinstance(categories, list):
        return gaps

    used_category_ids = {c.get("id") for c in categories if isinstance(c, dict) and c.get("id")}
    for c_index, category in enumerate(categories):
        if not isinstance(category, dict):
            continue

        if not category.get("id"):
            gaps.append(f"category #{c_index} id")
            if fix:
                category["id"] = _unique_id(f"cat-{c_index + 1}", used_category_ids)
                used_category_ids.add(category["id"])
        if not category.get("icon"):
            gaps.append(f"category #{c_index} icon")
            if fix:
                category["icon"] = DEFAULT_ICON
        if not isinstance(category.get("entries"), list):
            gaps.append(f"category #{c_index} entries")
            if fix:
                category["entries"] = []
        gaps.extend(_fold_legacy_background(category, fix))

        entries = category.get("entries") if isinstance(category.get("entries"), list) else []
        used_entry_ids = {e.get("id") for e in entries if isinstance(e, dict) and e.get("id")}
        for e_index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                continue
            if not entry.get("id"):
                gaps.append(f"entry #{e_index} id")
                if fix:
                    entry["id"] = _unique_id(f"{category.get('id')}-entry-{e_index + 1}", used_entry_ids)
                    used_entry_ids.add(entry["id"])
            pages = entry.get("pages")
            if not isinstance(pages, list) or not pages:
                gaps.append(f"entry #{e_index} pages")
                if fix:
                    entry["pages"] = [{"content": ""}]
            elif any(not isinstance(p, dict) for p in pages):
                gaps.append(f"entry #{e_index} raw pages")
                if fix:
                    entry["pages"] = [p if isinstance(p, dict) else {"content": "" if p is None else str(p)}
                                      for p in pages]
            gaps.extend(_fold_legacy_background(entry, fix))

        state = category.get("windowState")
        if not isinstance(state, dict):
            gaps.append(f"category #{c_index} windowState")
            if fix:
                state = default_window_state_blob()
                state["isOpen"] = False
                state["activeEntryId"] = _first_entry_id(category)
                category["windowState"] = state
        else:
            for key, value in default_window_state_blob().items():
                if key not in state:
                    gaps.append(f"category #{c_index} windowState.{key}")
                    if fix:
                        state[key] = _first_entry_id(category) if key == "activeEntryId" else value

    return gaps


def _needs_backfill(blob: Dict[str, Any]) -> bool:
    return bool(_backfill(blob, fix=False))


def _backfill_defaults(blob: Dict[str, Any]) -> None:
    gaps = _backfill(blob, fix=True)
    logger.debug(f"Backfilled {len(gaps)} gap(s): {gaps[:10]}")


DEFAULT_STAGES: List[MigrationStage] = [
    MigrationStage("flat_pages_to_entries", _has_flat_categories, _flat_pages_to_entries),
    MigrationStage("pages_to_categories", _has_root_pages, _pages_to_categories),
    MigrationStage("global_window_state", _has_global_window_state, _global_to_category_window_state),
    MigrationStage("backfill_defaults", _needs_backfill, _backfill_defaults),
]


class MigrationEngine:
    """
    Upgrades a persisted blob of unknown vintage into the current schema.
    The input is never mutated; stages run in strict order, each only when
    its precondition matches the shape left by the previous ones.
    """

    def __init__(self, stages: Optional[List[MigrationStage]] = None) -> None:
        self.stages: List[MigrationStage] = list(DEFAULT_STAGES if stages is None else stages)

    def pending_stages(self, raw: Any) -> List[str]:
        """Names of the stages a migration of `raw` would run (dry run on a copy)."""
        return self._run(self._sanitize(raw))

    def migrate(self, raw: Any) -> Dict[str, Any]:
        """Returns a migrated deep copy of `raw` as a camelCase dict."""
        blob = self._sanitize(raw)
        applied = self._run(blob)
        if applied:
            logger.info(f"Settings migrated through stages: {', '.join(applied)}")
        return blob

    def _run(self, blob: Dict[str, Any]) -> List[str]:
        applied: List[str] = []
        for stage in self.stages:
            if stage.applies(blob):
                stage.apply(blob)
                log_migration_stage(stage.name, blob)
                applied.append(stage.name)
        return applied

    def load(self, raw: Any) -> SpellBookSettings:
        """
        Migrates and validates into the typed settings handle. Values that
        still fail validation are reset to their defaults instead of rejecting
        the whole load, which would lose all user data.
        """
        blob = self.migrate(raw)
        for _ in range(MAX_REPAIR_ROUNDS):
            try:
                return SpellBookSettings.model_validate(blob)
            except ValidationError as e:
                if not self._drop_invalid_values(blob, e):
                    break
                blob = self.migrate(blob)

        logger.error("Persisted settings could not be repaired; starting from defaults.")
        return SpellBookSettings()

    # --- Shape checks ---

    def _sanitize(self, raw: Any) -> Dict[str, Any]:
        try:
            return self._check_shape(raw)
        except MigrationUnrecognizedShape as e:
            logger.warning(f"Unrecognized settings shape ({e}); treating as current and backfilling defaults.")
            return {}

    def _check_shape(self, raw: Any) -> Dict[str, Any]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise MigrationUnrecognizedShape(f"root is {type(raw).__name__}, expected a mapping")

        blob = copy.deepcopy(raw)
        categories = blob.get("categories")
        if "categories" in blob and not isinstance(categories, list):
            logger.warning(f"Ignoring unrecognized 'categories' value of type {type(categories).__name__}")
            del blob["categories"]
        elif isinstance(categories, list):
            kept = [c for c in categories if isinstance(c, dict)]
            if len(kept) != len(categories):
                logger.warning(f"Ignoring {len(categories) - len(kept)} unrecognized category item(s)")
            blob["categories"] = kept
            for category in kept:
                entries = category.get("entries")
                if "entries" in category and not isinstance(entries, list):
                    logger.warning(f"Ignoring unrecognized entries of category '{category.get('id')}'")
                    del category["entries"]
                elif isinstance(entries, list):
                    category["entries"] = [e for e in entries if isinstance(e, dict)]
        return blob

    @staticmethod
    def _drop_invalid_values(blob: Dict[str, Any], error: ValidationError) -> bool:
        """Removes each offending key so the backfill can restore its default."""
        dropped = False
        for err in error.errors():
            loc = err.get("loc", ())
            if not loc or not isinstance(loc[-1], str):
                continue
            parent: Any = blob
            for part in loc[:-1]:
                try:
                    parent = parent[part]
                except (KeyError, IndexError, TypeError):
                    parent = None
                    break
            if isinstance(parent, dict) and loc[-1] in parent:
                logger.warning(f"Resetting invalid setting {'.'.join(str(p) for p in loc)}: {err.get('msg')}")
                del parent[loc[-1]]
                dropped = True
        return dropped
