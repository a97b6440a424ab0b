import datetime
from dataclasses import replace

import pytest

from passvault.models import CustomField, FieldKind, VaultSnapshot
from passvault.state import (
    AddCategory,
    AddEntry,
    ClearAll,
    DeleteEntries,
    DeleteEntry,
    ImportData,
    MarkUsed,
    UpdateEntry,
    UpdateSettings,
    reduce,
)

T0 = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
T1 = T0 + datetime.timedelta(hours=1)


@pytest.fixture
def snapshot():
    return reduce(VaultSnapshot(last_modified=T0), AddEntry("Gmail", "a@b.com", "abc", entry_id="e1"), now=T0)


# ─── Entries ───

def test_add_entry(snapshot):
    entry = snapshot.get_entry("e1")
    assert entry.title == "Gmail"
    assert entry.created_at == entry.updated_at == T0
    assert entry.category == "1"
    assert snapshot.category_name(entry.category) == "Personal"


def test_add_entry_generates_unique_ids():
    snapshot = VaultSnapshot()
    snapshot = reduce(snapshot, AddEntry("a", "u", "p"))
    snapshot = reduce(snapshot, AddEntry("b", "u", "p"))
    assert len({e.id for e in snapshot.entries}) == 2


def test_add_duplicate_id_rejected(snapshot):
    with pytest.raises(ValueError):
        reduce(snapshot, AddEntry("Other", "u", "p", entry_id="e1"))


def test_reduce_does_not_mutate_input(snapshot):
    reduce(snapshot, AddEntry("Other", "u", "p"), now=T1)
    reduce(snapshot, DeleteEntry("e1"), now=T1)
    assert [e.id for e in snapshot.entries] == ["e1"]
    assert snapshot.last_modified == T0


def test_update_entry_advances_updated_at(snapshot):
    changed = replace(snapshot.get_entry("e1"), password="N3w-Passw0rd!",
                      created_at=T1, custom_fields=[CustomField("PIN", "1234", FieldKind.PASSWORD)])

    updated = reduce(snapshot, UpdateEntry(changed), now=T1)

    entry = updated.get_entry("e1")
    assert entry.password == "N3w-Passw0rd!"
    assert entry.created_at == T0
    assert entry.updated_at == T1
    assert updated.last_modified == T1


def test_updated_at_strictly_increases_with_frozen_clock(snapshot):
    updated = reduce(snapshot, UpdateEntry(snapshot.get_entry("e1")), now=T0)
    assert updated.get_entry("e1").updated_at > T0


def test_update_unknown_entry_is_noop(snapshot):
    ghost = replace(snapshot.get_entry("e1"), id="ghost")
    assert reduce(snapshot, UpdateEntry(ghost)) is snapshot


def test_delete_entry(snapshot):
    assert reduce(snapshot, DeleteEntry("e1")).entries == []
    assert reduce(snapshot, DeleteEntry("missing")) is snapshot


def test_delete_entries(snapshot):
    snapshot = reduce(snapshot, AddEntry("b", "u", "p", entry_id="e2"))
    snapshot = reduce(snapshot, AddEntry("c", "u", "p", entry_id="e3"))
    remaining = reduce(snapshot, DeleteEntries(["e1", "e3", "missing"]))
    assert [e.id for e in remaining.entries] == ["e2"]


def test_mark_used(snapshot):
    used = reduce(snapshot, MarkUsed("e1"), now=T1).get_entry("e1")
    assert used.last_used == T1
    assert used.updated_at == T1


# ─── Categories and settings ───

def test_add_category(snapshot):
    updated = reduce(snapshot, AddCategory("Travel", color="#00FF00"))
    added = updated.categories[-1]
    assert added.name == "Travel"
    assert updated.category_name(added.id) == "Travel"
    assert len(updated.categories) == len(snapshot.categories) + 1


def test_unknown_category_name(snapshot):
    assert snapshot.category_name("does-not-exist") == "Unknown"


def test_update_settings(snapshot):
    updated = reduce(snapshot, UpdateSettings({'auto_lock_minutes': 5, 'theme': "dark"}))
    assert updated.settings.auto_lock_minutes == 5
    assert updated.settings.theme == "dark"


def test_update_settings_without_change_is_noop(snapshot):
    assert reduce(snapshot, UpdateSettings({'theme': snapshot.settings.theme})) is snapshot


# ─── Import and clear ───

def test_import_skips_existing_ids(snapshot):
    other = reduce(VaultSnapshot(), AddEntry("Bank", "u", "p", entry_id="e2")).entries[0]
    duplicate = replace(snapshot.get_entry("e1"), title="Replaced?")

    imported = reduce(snapshot, ImportData([duplicate, other], settings={'theme': "dark"}))

    assert [e.title for e in imported.entries] == ["Gmail", "Bank"]
    assert imported.settings.theme == "dark"


def test_import_keeps_ids_unique_within_one_import():
    entry = reduce(VaultSnapshot(), AddEntry("Gmail", "u", "p", entry_id="e1")).entries[0]
    twin = replace(entry, title="Second copy")

    imported = reduce(VaultSnapshot(), ImportData([entry, twin]))

    assert [e.id for e in imported.entries] == ["e1"]
    assert imported.entries[0].title == "Gmail"


def test_empty_import_is_noop(snapshot):
    assert reduce(snapshot, ImportData([])) is snapshot


def test_clear_all(snapshot):
    cleared = reduce(snapshot, UpdateSettings({'theme': "dark"}))
    cleared = reduce(cleared, ClearAll(), now=T1)
    assert cleared.entries == []
    assert cleared.settings.theme == "light"
    assert cleared.last_modified == T1


def test_unknown_event(snapshot):
    with pytest.raises(TypeError):
        reduce(snapshot, object())
