"""
Canonical byte encoding of a vault snapshot.

Snapshots are stored as UTF-8 JSON objects tagged with a schema version.
Every field added after version 1 is optional on decode, and keys this
version does not know are ignored, so older and newer snapshots both load.
"""

import json
import logging

from . import config
from .errors import MalformedVault
from .models import (
    Category,
    CredentialEntry,
    Settings,
    VaultSnapshot,
    default_categories,
    format_timestamp,
    parse_timestamp,
    utcnow,
)

logger = logging.getLogger(__name__)


class VaultCodec:

    @staticmethod
    def encode(snapshot: VaultSnapshot) -> bytes:
        data = {
            'version': snapshot.version,
            'last_modified': format_timestamp(snapshot.last_modified),
            'entries': [e.to_dict() for e in snapshot.entries],
            'categories': [c.to_dict() for c in snapshot.categories],
            'settings': snapshot.settings.to_dict(),
        }
        return json.dumps(data, sort_keys=True, separators=(',', ':')).encode('utf-8')

    @staticmethod
    def decode(data: bytes) -> VaultSnapshot:
        """
        Decode a snapshot.

        Raises:
            MalformedVault: If the bytes are not a well-formed snapshot
        """
        try:
            document = json.loads(data.decode('utf-8'))
        except ValueError as e:
            raise MalformedVault(f"not a JSON document ({e})") from e

        if not isinstance(document, dict):
            raise MalformedVault("top level is not an object")

        version = document.get('version')
        if not isinstance(version, int) or isinstance(version, bool):
            raise MalformedVault(f"missing or invalid schema version: {version!r}")
        if version > config.SCHEMA_VERSION:
            logger.warning(f"Decoding snapshot schema {version} with reader for schema {config.SCHEMA_VERSION}")

        try:
            entries = [CredentialEntry.from_dict(e) for e in document.get('entries', [])]
            if 'categories' in document:
                categories = [Category.from_dict(c) for c in document['categories']]
            else:
                categories = default_categories()
            settings = Settings.from_dict(document.get('settings', {}))
            last_modified = parse_timestamp(document.get('last_modified')) or utcnow()
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedVault(f"{type(e).__name__}: {e}") from e

        return VaultSnapshot(
            entries=entries,
            categories=categories,
            settings=settings,
            version=version,
            last_modified=last_modified,
        )
