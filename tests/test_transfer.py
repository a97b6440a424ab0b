import json
import datetime

import pytest

from passvault import config
from passvault.errors import MalformedVault
from passvault.models import VaultSnapshot
from passvault.state import AddEntry, ImportData, UpdateSettings, reduce
from passvault.transfer import dumps_export, export_data, export_filename, loads_export

NOW = datetime.datetime(2026, 3, 14, 9, 30, tzinfo=datetime.timezone.utc)


@pytest.fixture
def snapshot():
    snapshot = reduce(VaultSnapshot(), AddEntry("Gmail", "a@b.com", "abc", entry_id="e1"), now=NOW)
    return reduce(snapshot, UpdateSettings({'theme': "dark"}), now=NOW)


def test_export_document_layout(snapshot):
    document = export_data(snapshot, "f" * 64, now=NOW)

    assert set(document) == {'passwords', 'categories', 'settings', 'exportDate', 'userHash', 'version'}
    assert document['version'] == config.EXPORT_VERSION
    assert document['userHash'] == "f" * 64
    assert document['exportDate'] == NOW.isoformat()
    assert document['passwords'][0]['password'] == "abc"
    assert document['settings']['theme'] == "dark"


def test_export_then_import_into_empty_vault(snapshot):
    event = loads_export(dumps_export(snapshot, "f" * 64))

    assert isinstance(event, ImportData)
    restored = reduce(VaultSnapshot(), event)
    assert [e.to_dict() for e in restored.entries] == [e.to_dict() for e in snapshot.entries]
    assert restored.settings.theme == "dark"


def test_import_into_same_vault_adds_nothing(snapshot):
    event = loads_export(dumps_export(snapshot, None))
    assert reduce(snapshot, event) is snapshot


def test_export_filename():
    assert export_filename("abcdef0123456789", NOW) == "passvault-backup-abcdef01-2026-03-14.json"
    assert export_filename(None, NOW) == "passvault-backup-unknown-2026-03-14.json"


@pytest.mark.parametrize("data", [
    b"not json",
    b"[]",
    b'{"passwords": "nope"}',
    b'{"passwords": [{"id": "x"}]}',
    b'{"passwords": [], "settings": [1]}',
    b'{"passwords": [], "settings": {"auto_lock_minutes": "5"}}',
    b'{"passwords": [], "settings": {"theme": "neon"}}',
])
def test_malformed_exports(data):
    with pytest.raises(MalformedVault):
        loads_export(data)


def test_export_without_settings():
    event = loads_export(json.dumps({'passwords': []}).encode())
    assert event.entries == []
    assert event.settings is None
