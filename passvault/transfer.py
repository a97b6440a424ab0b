"""
Plaintext export and import of a vault.

An export holds every secret in the clear. It is the caller's job to
protect the file it ends up in.
"""

import json
import logging
import datetime
from typing import Any, Dict, Optional

from . import config
from .errors import MalformedVault
from .models import CredentialEntry, Settings, VaultSnapshot, format_timestamp, utcnow
from .state import ImportData

logger = logging.getLogger(__name__)


def export_data(snapshot: VaultSnapshot, user_hash: Optional[str],
                now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    return {
        'passwords': [e.to_dict() for e in snapshot.entries],
        'categories': [c.to_dict() for c in snapshot.categories],
        'settings': snapshot.settings.to_dict(),
        'exportDate': format_timestamp(now or utcnow()),
        'userHash': user_hash,
        'version': config.EXPORT_VERSION,
    }


def dumps_export(snapshot: VaultSnapshot, user_hash: Optional[str]) -> bytes:
    logger.warning("Exporting vault contents unencrypted")
    return json.dumps(export_data(snapshot, user_hash), indent=2).encode('utf-8')


def export_filename(user_hash: Optional[str], now: Optional[datetime.datetime] = None) -> str:
    day = (now or utcnow()).date().isoformat()
    return f"passvault-backup-{(user_hash or 'unknown')[:8]}-{day}.json"


def loads_export(data: bytes) -> ImportData:
    """
    Parse an export into an import event.

    Raises:
        MalformedVault: If the document is not an export
    """
    try:
        document = json.loads(data.decode('utf-8'))
    except ValueError as e:
        raise MalformedVault(f"export is not a JSON document ({e})") from e

    if not isinstance(document, dict) or not isinstance(document.get('passwords'), list):
        raise MalformedVault("export has no password list")

    try:
        entries = [CredentialEntry.from_dict(p) for p in document['passwords']]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedVault(f"invalid exported entry ({type(e).__name__}: {e})") from e

    settings = document.get('settings')
    if settings is not None and not isinstance(settings, dict):
        raise MalformedVault("export settings are not an object")
    if settings is not None:
        try:
            Settings.from_dict(settings)
        except ValueError as e:
            raise MalformedVault(f"invalid exported settings ({e})") from e
    return ImportData(entries=entries, settings=settings)
