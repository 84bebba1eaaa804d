"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           tests/unit/test_migration.py
Version:        1.0.0
Description:    Schema migration: legacy shapes, idempotence, content
                preservation and degradation on unrecognized input.
------------------------------------------------------------------------------
"""

import copy

import pytest

from core.migration import LEGACY_ROOT_WINDOW_KEYS, MIGRATED_CATEGORY_ID, MigrationEngine
from core.models.document import SCHEMA_VERSION, default_settings_blob


@pytest.fixture
def engine():
    return MigrationEngine()


ROOT_PAGES_BLOB = {
    "pages": [
        {"id": "p1", "content": "# Fireball\n\nBig boom."},
        {"content": "Second page"},
        "raw string page",
    ],
    "activePageId": "p1",
    "isOpen": True,
    "top": "120px",
    "left": "40px",
}

FLAT_CATEGORIES_BLOB = {
    "categories": [
        {"id": "c1", "name": "Spells", "pages": [{"id": "x", "content": "a"}, {"id": "x", "content": "b"}]},
        {"id": "c2", "name": "Potions", "pages": [{"content": "c"}]},
    ],
    "activeCategoryId": "c2",
    "activePageId": "c2-entry-1",
    "width": 800,
}

GLOBAL_WINDOW_BLOB = {
    "categories": [
        {"id": "a", "name": "A", "entries": [{"id": "a1", "pages": [{"content": "1"}, {"content": "2"}]}]},
        {"id": "b", "name": "B", "entries": [{"id": "b1", "pages": [{"content": "3"}]}]},
    ],
    "isOpen": True,
    "top": 10,
    "activeEntryId": "a1",
    "activePageIndex": 1,
}

LEGACY_BLOBS = [ROOT_PAGES_BLOB, FLAT_CATEGORIES_BLOB, GLOBAL_WINDOW_BLOB, {}, None]


def _all_page_contents(blob):
    return [p["content"] for c in blob["categories"] for e in c["entries"] for p in e["pages"]]


def test_current_blob_is_untouched(engine):
    blob = default_settings_blob()
    assert engine.pending_stages(blob) == []
    assert engine.migrate(blob) == blob


@pytest.mark.parametrize("raw", LEGACY_BLOBS)
def test_migration_is_idempotent(engine, raw):
    once = engine.migrate(raw)
    assert engine.pending_stages(once) == []
    assert engine.migrate(once) == once


@pytest.mark.parametrize("raw", [ROOT_PAGES_BLOB, FLAT_CATEGORIES_BLOB, GLOBAL_WINDOW_BLOB])
def test_input_is_never_mutated(engine, raw):
    snapshot = copy.deepcopy(raw)
    engine.migrate(raw)
    assert raw == snapshot


def test_root_pages_become_one_category(engine):
    assert engine.pending_stages(ROOT_PAGES_BLOB) == [
        "pages_to_categories", "global_window_state", "backfill_defaults",
    ]
    blob = engine.migrate(ROOT_PAGES_BLOB)

    assert [c["id"] for c in blob["categories"]] == [MIGRATED_CATEGORY_ID]
    category = blob["categories"][0]
    assert category["name"] == "Spells"
    assert [e["id"] for e in category["entries"]] == ["p1", "migrated-cat-entry-2", "migrated-cat-entry-3"]
    assert [len(e["pages"]) for e in category["entries"]] == [1, 1, 1]

    state = category["windowState"]
    assert state["isOpen"] is True
    assert state["top"] == "120px"
    assert state["activeEntryId"] == "p1"
    assert blob["bookModeEnabled"] is True
    assert blob["schemaVersion"] == SCHEMA_VERSION
    for key in LEGACY_ROOT_WINDOW_KEYS:
        assert key not in blob


def test_every_legacy_page_lands_in_exactly_one_page(engine):
    blob = engine.migrate(ROOT_PAGES_BLOB)
    contents = _all_page_contents(blob)
    assert contents == ["# Fireball\n\nBig boom.", "Second page", "raw string page"]

    blob = engine.migrate(FLAT_CATEGORIES_BLOB)
    assert sorted(_all_page_contents(blob)) == ["a", "b", "c"]


def test_flat_category_pages_become_entries(engine):
    blob = engine.migrate(FLAT_CATEGORIES_BLOB)
    c1, c2 = blob["categories"]

    assert "pages" not in c1
    # Duplicate legacy ids are replaced
    assert [e["id"] for e in c1["entries"]] == ["x", "c1-entry-2"]
    assert [e["id"] for e in c2["entries"]] == ["c2-entry-1"]

    # The named active category inherits the legacy window
    assert c2["windowState"]["width"] == 800
    assert c2["windowState"]["activeEntryId"] == "c2-entry-1"
    assert c1["windowState"]["isOpen"] is False
    assert c1["windowState"]["activeEntryId"] == "x"


def test_global_window_state_goes_to_first_category_when_unnamed(engine):
    blob = engine.migrate(GLOBAL_WINDOW_BLOB)
    a, b = blob["categories"]

    assert a["windowState"]["isOpen"] is True
    assert a["windowState"]["top"] == 10
    assert a["windowState"]["activeEntryId"] == "a1"
    assert a["windowState"]["activePageIndex"] == 1
    assert b["windowState"]["isOpen"] is False
    assert b["windowState"]["activeEntryId"] == "b1"


def test_backfill_synthesizes_missing_structure(engine):
    raw = {
        "categories": [
            {"id": "c", "entries": [{"id": "e", "pages": []}, {"pages": [{"content": "x"}]}]},
            {"name": "No id", "entries": []},
        ],
    }
    blob = engine.migrate(raw)
    first, second = blob["categories"]

    assert first["icon"] == "fa-hat-wizard"
    assert first["entries"][0]["pages"] == [{"content": ""}]
    assert first["entries"][1]["id"] == "c-entry-2"
    assert first["windowState"]["isOpen"] is False
    assert first["windowState"]["activeEntryId"] == "e"
    assert second["id"] == "cat-2"

    for key in default_settings_blob():
        assert key in blob


def test_backfill_fills_partial_window_state(engine):
    raw = {"categories": [{"id": "c", "entries": [{"id": "e", "pages": [{"content": "x"}]}],
                           "windowState": {"isOpen": True, "left": 5}}]}
    state = engine.migrate(raw)["categories"][0]["windowState"]
    assert state["isOpen"] is True
    assert state["left"] == 5
    assert state["activeEntryId"] == "e"
    assert state["sidebarWidth"] == 180


def test_legacy_flat_background_is_folded(engine):
    raw = {"categories": [{
        "id": "c",
        "background": "castle.png",
        "backgroundBlur": 5,
        "entries": [{"id": "e", "pages": [{"content": ""}], "background": "", "backgroundPos": "10% 10%"}],
    }]}
    category = engine.migrate(raw)["categories"][0]
    assert category["background"] == {"url": "castle.png", "position": "50% 50%", "blurRadius": 5}
    assert "backgroundBlur" not in category
    entry = category["entries"][0]
    assert entry["background"] is None
    assert "backgroundPos" not in entry


@pytest.mark.parametrize("raw", [[1, 2, 3], "settings", 42])
def test_unrecognized_root_degrades_to_defaults(engine, raw):
    assert engine.migrate(raw) == default_settings_blob()


def test_unrecognized_categories_value_is_replaced(engine):
    blob = engine.migrate({"categories": "oops", "lockLayout": True})
    assert blob["lockLayout"] is True
    assert [c["id"] for c in blob["categories"]] == ["default-cat"]


def test_non_mapping_items_are_dropped(engine):
    blob = engine.migrate({"categories": [7, {"id": "c", "entries": ["junk", {"id": "e"}]}]})
    assert [c["id"] for c in blob["categories"]] == ["c"]
    assert [e["id"] for e in blob["categories"][0]["entries"]] == ["e"]


def test_load_returns_typed_settings(engine):
    settings = engine.load(ROOT_PAGES_BLOB)
    category = settings.categories[0]
    assert category.window_state.top == 120
    assert category.window_state.left == 40
    assert category.window_state.is_open is True
    assert category.entries[0].pages[0].content.startswith("# Fireball")


def test_load_repairs_invalid_values(engine):
    raw = default_settings_blob()
    raw["paginateLimit"] = 5
    raw["opacity"] = "very"
    raw["lockLayout"] = True
    settings = engine.load(raw)
    assert settings.paginate_limit == 3000
    assert settings.opacity == 0.1
    assert settings.lock_layout is True
