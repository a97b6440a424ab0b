"""
Pure state transitions over a vault snapshot.

``reduce`` never touches storage; whoever dispatches events decides when
the resulting snapshot is persisted.
"""

import copy
import uuid
import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from .models import Category, CredentialEntry, CustomField, VaultSnapshot, utcnow


@dataclass(frozen=True)
class AddEntry:
    title: str
    username: str
    password: str
    category: str = "1"
    url: str = ""
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    custom_fields: List[CustomField] = field(default_factory=list)
    is_favorite: bool = False
    expiry_date: Optional[datetime.datetime] = None
    two_factor_secret: Optional[str] = None
    entry_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateEntry:
    entry: CredentialEntry


@dataclass(frozen=True)
class DeleteEntry:
    entry_id: str


@dataclass(frozen=True)
class DeleteEntries:
    entry_ids: List[str]


@dataclass(frozen=True)
class MarkUsed:
    entry_id: str


@dataclass(frozen=True)
class AddCategory:
    name: str
    color: str = "#6B7280"
    icon: str = "Folder"


@dataclass(frozen=True)
class UpdateSettings:
    changes: Dict[str, Any]


@dataclass(frozen=True)
class ImportData:
    entries: List[CredentialEntry]
    settings: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ClearAll:
    pass


Event = Union[AddEntry, UpdateEntry, DeleteEntry, DeleteEntries, MarkUsed,
              AddCategory, UpdateSettings, ImportData, ClearAll]


def _changed(snapshot: VaultSnapshot, now: datetime.datetime, **changes) -> VaultSnapshot:
    return replace(snapshot, last_modified=now, **changes)


def reduce(snapshot: VaultSnapshot, event: Event,
           now: Optional[datetime.datetime] = None) -> VaultSnapshot:
    """
    Apply ``event`` to ``snapshot``.

    Returns a new snapshot, or the same object when the event changes
    nothing (unknown id, empty import).
    """
    now = now or utcnow()

    if isinstance(event, AddEntry):
        entry = CredentialEntry(
            id=event.entry_id or str(uuid.uuid4()),
            title=event.title,
            username=event.username,
            password=event.password,
            category=event.category,
            created_at=now,
            updated_at=now,
            url=event.url,
            notes=event.notes,
            tags=list(event.tags),
            custom_fields=copy.deepcopy(event.custom_fields),
            is_favorite=event.is_favorite,
            expiry_date=event.expiry_date,
            two_factor_secret=event.two_factor_secret,
        )
        if snapshot.get_entry(entry.id) is not None:
            raise ValueError(f"Duplicate entry id: {entry.id}")
        return _changed(snapshot, now, entries=snapshot.entries + [entry])

    if isinstance(event, UpdateEntry):
        current = snapshot.get_entry(event.entry.id)
        if current is None:
            return snapshot
        updated = replace(event.entry, created_at=current.created_at, updated_at=current.updated_at)
        updated = updated.touched(now)
        entries = [updated if e.id == current.id else e for e in snapshot.entries]
        return _changed(snapshot, now, entries=entries)

    if isinstance(event, (DeleteEntry, DeleteEntries)):
        ids = {event.entry_id} if isinstance(event, DeleteEntry) else set(event.entry_ids)
        entries = [e for e in snapshot.entries if e.id not in ids]
        if len(entries) == len(snapshot.entries):
            return snapshot
        return _changed(snapshot, now, entries=entries)

    if isinstance(event, MarkUsed):
        current = snapshot.get_entry(event.entry_id)
        if current is None:
            return snapshot
        used = current.touched(now)
        used.last_used = used.updated_at
        entries = [used if e.id == current.id else e for e in snapshot.entries]
        return _changed(snapshot, now, entries=entries)

    if isinstance(event, AddCategory):
        category = Category(id=str(uuid.uuid4()), name=event.name, color=event.color, icon=event.icon)
        return _changed(snapshot, now, categories=snapshot.categories + [category])

    if isinstance(event, UpdateSettings):
        settings = snapshot.settings.merged(event.changes)
        if settings == snapshot.settings:
            return snapshot
        return _changed(snapshot, now, settings=settings)

    if isinstance(event, ImportData):
        existing = {e.id for e in snapshot.entries}
        new_entries = []
        for entry in event.entries:
            # First occurrence wins, also within one import.
            if entry.id in existing:
                continue
            existing.add(entry.id)
            new_entries.append(copy.deepcopy(entry))
        settings = snapshot.settings.merged(event.settings) if event.settings else snapshot.settings
        if not new_entries and settings == snapshot.settings:
            return snapshot
        return _changed(snapshot, now, entries=snapshot.entries + new_entries, settings=settings)

    if isinstance(event, ClearAll):
        return VaultSnapshot(last_modified=now)

    raise TypeError(f"Unknown event: {event!r}")
