"""
Configuration constants for the PassVault core.
"""

# Application Metadata
APP_VERSION = "2.0"  # Use: Current version of the vault core. Type: str. Range: Semantic versioning string.
APP_NAME = "PassVault"  # Use: Name of the application, used as TOTP issuer and in exports. Type: str. Range: Any valid string.

# Security Settings
SALT_SIZE = 32  # Use: Size of the per-save random salt in bytes for key derivation. Type: int. Range: 32 bytes (256 bits).
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes.
NONCE_SIZE = 16  # Use: Size of the AES-GCM nonce in bytes. Type: int. Range: 16 bytes (128 bits), fresh per encryption.
TAG_SIZE = 16  # Use: Size of the AES-GCM authentication tag in bytes. Type: int. Range: 16 bytes (128 bits).
PBKDF2_ITERATIONS = 310000  # Use: Number of iterations for PBKDF2-HMAC-SHA256 key derivation. Type: int. Range: At least 210,000.
PBKDF2_MIN_ITERATIONS = 1000  # Use: Lowest iteration count derive_key accepts. Only test fixtures go below PBKDF2_ITERATIONS. Type: int. Range: Positive integer.
PBKDF2_RECOMMENDED_MIN_ITERATIONS = 210000  # Use: Iteration count below which CryptoManager logs a weak-derivation warning. Type: int. Range: OWASP floor for PBKDF2-HMAC-SHA256.
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Type: int. Range: Typically 1 to 10.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter in KiB. Type: int. Range: At least 65536 (64 MB).
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter. Type: int. Range: Typically 1 to 8.
KDF_PBKDF2 = "pbkdf2"  # Use: Identifier of the PBKDF2-HMAC-SHA256 key derivation. Type: str.
KDF_ARGON2ID = "argon2id"  # Use: Identifier of the Argon2id key derivation. Type: str.
DEFAULT_KDF = KDF_PBKDF2  # Use: Key derivation used by new VaultStore instances. Type: str. Range: KDF_PBKDF2 or KDF_ARGON2ID.
PIN_HASH_ITERATIONS = 100000  # Use: Number of iterations for PBKDF2-HMAC-SHA256 used for PIN hashing. Type: int. Range: At least 100,000.
PASSWORD_MIN_LENGTH = 12  # Use: Minimum length for a master passphrase to be reported as strong. Type: int. Range: Typically 8 to 16.

# Vault Format
SCHEMA_VERSION = 2  # Use: Version written into every encoded snapshot. Type: int. Range: Positive integer, bumped on incompatible changes.
EXPORT_VERSION = "2.0"  # Use: Version string written into plaintext exports. Type: str.

# Storage Keys
USERS_KEY = "users"  # Use: Key of the shared user registry in the blob store. Type: str.
VAULT_KEY_PREFIX = "vault_"  # Use: Prefix of per-user encrypted vault blobs, followed by the identity hash. Type: str.
BIOMETRIC_KEY_PREFIX = "biometric_"  # Use: Prefix of registered authenticator handles. Type: str.
BIOMETRIC_FALLBACK_PREFIX = "biometric_fallback_"  # Use: Prefix of biometric fallback blobs, followed by the authenticator handle. Type: str.
PIN_AUTH_KEY = "pin_auth"  # Use: Key of the PIN authenticator record in the blob store. Type: str.
CONFIG_DIR_NAME = ".passvault"  # Use: Hidden directory within the user's home directory holding the file store. Type: str.
AUDIT_LOG_FILE = "audit.log"  # Use: Filename for the activity log. Type: str.
MAX_LOG_ENTRIES = 1000  # Use: Number of most recent activity log lines that are kept. Type: int. Range: Positive integer.

# Session Settings
AUTO_LOCK_MINUTES_DEFAULT = 15  # Use: Default inactivity timeout in minutes before the vault locks. Type: int. Range: 0 (never) upwards.
SAVE_WORKERS = 2  # Use: Number of background threads encoding, encrypting and writing vault snapshots. Type: int. Range: Positive integer.

# Security Analysis
PASSWORD_EXPIRY_DAYS_DEFAULT = 90  # Use: Days after creation an entry without explicit expiry counts as expired. Type: int. Range: Positive integer.
WEAK_PASSWORD_THRESHOLD = 60  # Use: Strength score below which a password is reported weak. Type: int. Range: 0 to 100.
STRENGTH_SYMBOLS = '!@#$%^&*(),.?":{}|<>'  # Use: Characters that earn the symbol bonus in strength scoring. Type: str.
RECENTLY_USED_DAYS = 30  # Use: Window for the "recently used" analytics count. Type: int. Range: Positive integer.
WEIGHT_WEAK = 30  # Use: Aggregate score penalty for an all-weak vault. Type: int.
WEIGHT_REUSED = 25  # Use: Aggregate score penalty for an all-reused vault. Type: int.
WEIGHT_EXPIRED = 20  # Use: Aggregate score penalty for an all-expired vault. Type: int.
WEIGHT_COMPROMISED = 25  # Use: Aggregate score penalty for an all-compromised vault. Type: int.

# Breach Check Settings
BREACH_API_URL = "https://api.pwnedpasswords.com/range/"  # Use: k-anonymity range endpoint, followed by the 5-character prefix. Type: str.
BREACH_PREFIX_LENGTH = 5  # Use: Number of hex characters of the SHA-1 digest sent to the service. Type: int. Range: 5.
BREACH_REQUEST_TIMEOUT_SECONDS = 10  # Use: Timeout for a single range request. Type: int. Range: Positive integer.
BREACH_MAX_RETRIES = 2  # Use: Attempts per range request before the lookup is reported unavailable. Type: int. Range: Positive integer.
BREACH_BACKOFF_SECONDS = 1.0  # Use: Delay before the first retry, doubled for each further retry. Type: float. Range: Non-negative.

# Password Generator Settings
PASSWORD_GENERATOR_DEFAULT_LENGTH = 16  # Use: Default length for generated passwords. Type: int.
PASSWORD_GENERATOR_MIN_LENGTH = 4  # Use: Minimum allowed length for generated passwords. Type: int.
PASSWORD_GENERATOR_MAX_LENGTH = 128  # Use: Maximum allowed length for generated passwords. Type: int.
PASSWORD_GENERATOR_SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"  # Use: Symbol alphabet of the generator. Type: str.
PASSWORD_GENERATOR_SIMILAR_CHARS = "il1Lo0O"  # Use: Characters removed when "exclude similar" is requested. Type: str.
PASSWORD_GENERATOR_AMBIGUOUS_CHARS = "{}[]()/\\'\"`~,;.<>"  # Use: Characters removed when "exclude ambiguous" is requested. Type: str.

# Categories and Settings for a new vault
DEFAULT_CATEGORIES = [  # Use: Categories every new vault starts with. Type: list[dict]. Range: id, name, color, icon.
    {"id": "1", "name": "Personal", "color": "#3B82F6", "icon": "User"},
    {"id": "2", "name": "Work", "color": "#EF4444", "icon": "Briefcase"},
    {"id": "3", "name": "Social", "color": "#10B981", "icon": "Users"},
    {"id": "4", "name": "Finance", "color": "#F59E0B", "icon": "CreditCard"},
    {"id": "5", "name": "Shopping", "color": "#8B5CF6", "icon": "ShoppingBag"},
]
UNKNOWN_CATEGORY_NAME = "Unknown"  # Use: Label shown for entries whose category no longer exists. Type: str.
THEMES = ("light", "dark", "auto")  # Use: Accepted values of Settings.theme. Type: tuple[str].
BACKUP_FREQUENCIES = ("daily", "weekly", "monthly", "never")  # Use: Accepted values of Settings.backup_frequency. Type: tuple[str].
