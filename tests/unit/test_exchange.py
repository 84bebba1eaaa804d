import json

import pytest

from core.document import DocumentModel
from core.errors import InvalidImport
from core.exchange import EXPORT_FORMAT_VERSION, ExchangeService


@pytest.fixture
def service():
    return ExchangeService()


def _write(tmp_path, data, name="backup.json"):
    path = tmp_path / name
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


def test_backup_filename():
    assert ExchangeService.backup_filename(1700000000123) == "spell-book-backup-1700000000123.json"
    assert ExchangeService.backup_filename().startswith("spell-book-backup-")


def test_export_payload_shape(tmp_path, service, document):
    path = service.save_to_file(document, tmp_path / "out.json")
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["version"] == EXPORT_FORMAT_VERSION
    assert data["exportDate"].endswith("Z")
    assert [c["id"] for c in data["categories"]] == ["default-cat"]
    assert "windowState" in data["categories"][0]
    # Global settings are not part of a backup
    assert "paginateLimit" not in data


def test_export_is_a_snapshot(service, document):
    payload = service.export_payload(document)
    document.rename_category("default-cat", "Changed")
    assert payload.categories[0].name == "Spell Book"


def test_export_import_cycle(tmp_path, service, document):
    document.add_category("Potions")
    document.add_entry("default-cat", "Fireball")
    path = service.save_to_file(document, tmp_path / "backup.json")

    target = DocumentModel()
    target.update_settings(paginate_limit=700)
    assert service.import_into(target, path) == 2

    assert [c.name for c in target.categories] == ["Spell Book", "Potions"]
    assert [e.name for e in target.categories[0].entries] == ["Welcome", "Fireball"]
    assert target.settings.paginate_limit == 700


def test_legacy_page_list_import(tmp_path, service, document):
    path = _write(tmp_path, {"pages": [{"content": "# Old"}, {"content": "notes"}]})
    assert service.import_into(document, path) == 1

    category = document.categories[0]
    assert category.id == "migrated-cat"
    assert [[p.content for p in e.pages] for e in category.entries] == [["# Old"], ["notes"]]


def test_flat_category_backup_import(service):
    categories = service.parse_import({
        "version": 1,
        "categories": [{"id": "c", "name": "Old", "pages": [{"content": "a"}, {"content": "b"}]}],
    })
    assert [len(e.pages) for e in categories[0].entries] == [1, 1]
    assert categories[0].window_state.active_entry_id == categories[0].entries[0].id


@pytest.mark.parametrize("data", [
    [],
    "text",
    {"something": "else"},
    {"categories": []},
    {"categories": [1, 2]},
    {"categories": [{"id": 5, "entries": []}]},
])
def test_invalid_payloads_rejected(service, data):
    with pytest.raises(InvalidImport):
        service.parse_import(data)


def test_rejected_import_leaves_document_untouched(tmp_path, service, document):
    before = document.to_blob()
    with pytest.raises(InvalidImport):
        service.import_into(document, _write(tmp_path, "{broken"))
    with pytest.raises(InvalidImport):
        service.import_into(document, tmp_path / "missing.json")
    with pytest.raises(InvalidImport):
        service.import_into(document, _write(tmp_path, {"categories": []}, "empty.json"))
    assert document.to_blob() == before
