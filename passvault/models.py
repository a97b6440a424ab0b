"""
Data model of a decrypted vault.
"""

import copy
import datetime
import enum
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional

from . import config
from .errors import VaultLocked


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_timestamp(value: Optional[datetime.datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None:
        return None
    parsed = datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


class FieldKind(str, enum.Enum):
    TEXT = "text"
    PASSWORD = "password"
    EMAIL = "email"
    URL = "url"


@dataclass
class CustomField:
    label: str
    value: str
    kind: FieldKind = FieldKind.TEXT

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'value': self.value, 'type': self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomField':
        return cls(label=data['label'], value=data['value'], kind=FieldKind(data.get('type', 'text')))


@dataclass
class Category:
    id: str
    name: str
    color: str = "#6B7280"
    icon: str = "Folder"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(id=data['id'], name=data['name'],
                   color=data.get('color', "#6B7280"), icon=data.get('icon', "Folder"))


def default_categories() -> List[Category]:
    return [Category.from_dict(c) for c in config.DEFAULT_CATEGORIES]


_SETTING_CHOICES = {
    'theme': config.THEMES,
    'backup_frequency': config.BACKUP_FREQUENCIES,
}


def _checked_setting(name: str, expected: type, value: Any) -> Any:
    # bool is an int subclass; a flag must not pass as a minute count.
    if expected is int:
        valid = isinstance(value, int) and not isinstance(value, bool) and value >= 0
    else:
        valid = isinstance(value, expected)
    if not valid:
        raise ValueError(f"Invalid value for setting {name}: {value!r}")
    choices = _SETTING_CHOICES.get(name)
    if choices is not None and value not in choices:
        raise ValueError(f"Setting {name} must be one of {', '.join(choices)}, got {value!r}")
    return value


@dataclass
class Settings:
    """Per-user preferences stored inside the encrypted vault."""
    auto_lock_minutes: int = config.AUTO_LOCK_MINUTES_DEFAULT
    theme: str = "light"
    show_password_strength: bool = True
    compact_view: bool = False
    enable_biometric: bool = False
    auto_fill_enabled: bool = True
    password_expiry_days: int = config.PASSWORD_EXPIRY_DAYS_DEFAULT
    enable_breach_check: bool = True
    enable_two_factor: bool = False
    backup_frequency: str = "weekly"
    language: str = "en"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """
        Create from dictionary, ignoring keys this version does not know.

        Raises:
            ValueError: If a known setting has the wrong type or an unknown choice
        """
        values = {}
        for f in fields(cls):
            if f.name in data:
                values[f.name] = _checked_setting(f.name, f.type, data[f.name])
        return cls(**values)

    def merged(self, changes: Dict[str, Any]) -> 'Settings':
        values = self.to_dict()
        values.update(changes)
        return Settings.from_dict(values)


@dataclass
class CredentialEntry:
    """Represents a single credential entry."""
    id: str
    title: str
    username: str
    password: str
    category: str
    created_at: datetime.datetime
    updated_at: datetime.datetime
    url: str = ""
    notes: str = ""
    tags: List[str] = field(default_factory=list)
    custom_fields: List[CustomField] = field(default_factory=list)
    is_favorite: bool = False
    last_used: Optional[datetime.datetime] = None
    expiry_date: Optional[datetime.datetime] = None
    is_compromised: Optional[bool] = None
    strength: Optional[int] = None
    two_factor_secret: Optional[str] = None

    def touched(self, now: Optional[datetime.datetime] = None) -> 'CredentialEntry':
        """Return a copy whose ``updated_at`` is strictly later than this one's."""
        now = now or utcnow()
        if now <= self.updated_at:
            now = self.updated_at + datetime.timedelta(microseconds=1)
        entry = copy.deepcopy(self)
        entry.updated_at = now
        return entry

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'title': self.title,
            'username': self.username,
            'password': self.password,
            'category': self.category,
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
            'url': self.url,
            'notes': self.notes,
            'tags': list(self.tags),
            'custom_fields': [f.to_dict() for f in self.custom_fields],
            'is_favorite': self.is_favorite,
            'last_used': format_timestamp(self.last_used),
            'expiry_date': format_timestamp(self.expiry_date),
            'is_compromised': self.is_compromised,
            'strength': self.strength,
            'two_factor_secret': self.two_factor_secret,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CredentialEntry':
        """Create from dictionary."""
        return cls(
            id=data['id'],
            title=data['title'],
            username=data['username'],
            password=data['password'],
            category=data.get('category', ''),
            created_at=parse_timestamp(data['created_at']),
            updated_at=parse_timestamp(data['updated_at']),
            url=data.get('url', ''),
            notes=data.get('notes', ''),
            tags=list(data.get('tags', [])),
            custom_fields=[CustomField.from_dict(f) for f in data.get('custom_fields', [])],
            is_favorite=data.get('is_favorite', False),
            last_used=parse_timestamp(data.get('last_used')),
            expiry_date=parse_timestamp(data.get('expiry_date')),
            is_compromised=data.get('is_compromised'),
            strength=data.get('strength'),
            two_factor_secret=data.get('two_factor_secret'),
        )


@dataclass
class VaultSnapshot:
    """The complete decrypted state of one user's vault."""
    entries: List[CredentialEntry] = field(default_factory=list)
    categories: List[Category] = field(default_factory=default_categories)
    settings: Settings = field(default_factory=Settings)
    version: int = config.SCHEMA_VERSION
    last_modified: datetime.datetime = field(default_factory=utcnow)

    def get_entry(self, entry_id: str) -> Optional[CredentialEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def category_name(self, category_id: str) -> str:
        for category in self.categories:
            if category.id == category_id:
                return category.name
        return config.UNKNOWN_CATEGORY_NAME


@dataclass
class UserRecord:
    identity_hash: str
    created_at: datetime.datetime
    last_login: datetime.datetime
    hint: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.identity_hash,
            'createdAt': format_timestamp(self.created_at),
            'lastLogin': format_timestamp(self.last_login),
            'hint': self.hint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecord':
        return cls(
            identity_hash=data['hash'],
            created_at=parse_timestamp(data['createdAt']),
            last_login=parse_timestamp(data['lastLogin']),
            hint=data.get('hint', ''),
        )


@dataclass
class SecurityReport:
    weak_passwords: int
    reused_passwords: int
    expired_passwords: int
    compromised_passwords: int
    total_passwords: int
    security_score: float
    generated_at: datetime.datetime
    weak_ids: List[str] = field(default_factory=list)
    reused_ids: List[str] = field(default_factory=list)
    expired_ids: List[str] = field(default_factory=list)
    compromised_ids: List[str] = field(default_factory=list)


@dataclass
class PasswordAnalytics:
    total_passwords: int
    recently_used: int
    never_used: int
    category_stats: Dict[str, int]
    strength_distribution: Dict[str, int]
    average_password_age: int
    most_used_category: str


@dataclass
class Session:
    """
    An authenticated session. Lives only in process memory, from a
    successful login until logout, auto-lock or process exit.
    """
    identity_hash: str
    started_at: datetime.datetime
    last_activity: datetime.datetime
    idle_timeout_minutes: int = config.AUTO_LOCK_MINUTES_DEFAULT
    _passphrase: Optional[bytearray] = field(default=None, repr=False, compare=False)

    @classmethod
    def open(cls, identity_hash: str, passphrase: bytes,
             idle_timeout_minutes: int = config.AUTO_LOCK_MINUTES_DEFAULT) -> 'Session':
        now = utcnow()
        return cls(identity_hash, now, now, idle_timeout_minutes, bytearray(passphrase))

    @property
    def active(self) -> bool:
        return self._passphrase is not None

    def passphrase(self) -> bytes:
        if self._passphrase is None:
            raise VaultLocked()
        return bytes(self._passphrase)

    def mark_activity(self, now: Optional[datetime.datetime] = None) -> None:
        self.last_activity = now or utcnow()

    def close(self) -> None:
        """Wipe the passphrase held for re-encryption."""
        if self._passphrase is not None:
            for i in range(len(self._passphrase)):
                self._passphrase[i] = 0
            self._passphrase = None
