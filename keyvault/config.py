"""
Configuration constants for the KeyVault application.
"""

# Application Metadata
APP_VERSION = "1.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "KeyVault Password Manager"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_TITLE_PREFIX = f"{APP_NAME} v{APP_VERSION}"  # Use: Banner printed when an interactive session starts. Type: str (f-string). Range: Derived from APP_NAME and APP_VERSION.

# Security Settings
SALT_SIZE = 32  # Use: Size of the random salt in bytes generated for every master credential. Type: int. Range: At least 16 bytes; 32 bytes (256 bits) by default.
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Controls the number of iterations. Type: int. Range: Typically 1 to 10. Higher values increase security but also computation time.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter. Controls the memory usage in KiB. Type: int. Range: At least 8 * ARGON2_PARALLELISM; 65536 (64 MB) recommended.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter. Controls the number of threads/lanes. Type: int. Range: Typically 1 to 8, often set to the number of CPU cores.
ARGON2_HASH_LEN = 32  # Use: Length in bytes of the raw Argon2id output embedded in the encoded digest. Type: int. Range: 16 to 64.
PASSWORD_MIN_LENGTH = 12  # Use: Minimum required length for master passwords created from the command line. Type: int. Range: Typically 8 to 16, but higher is better for master passwords.
MAX_LOGIN_ATTEMPTS = 5  # Use: Maximum number of failed login attempts before the command line session gives up. Type: int. Range: Positive integer (e.g., 3-10).

# Storage Settings
STORE_TIMEOUT_SECONDS = 5.0  # Use: How long a store call waits on another process holding the SQLite write lock before failing with StoreUnavailable. Type: float. Range: Positive number of seconds.

# Command Line Settings
PROMPT = "keyvault> "  # Use: Prompt shown before every session command. Type: str. Range: Any string.
PASSWORD_HIDDEN_TEXT = "••••••••"  # Use: Placeholder printed instead of a secret when an entry is echoed back after adding it. Type: str. Range: Any string.

# File and Directory Names
AUDIT_LOG_DIR = "logs"  # Use: Name of the directory, next to the vault file, that holds the audit log. Type: str. Range: Any valid directory name.
AUDIT_LOG_FILE = "audit.log"  # Use: Filename for the application's security audit log. Type: str. Range: Any valid filename.
CONFIG_DIR_NAME = ".keyvault"  # Use: Name of the hidden directory within the user's home directory where KeyVault stores its data files. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.db"  # Use: Default filename for the vault database. Type: str. Range: Any valid filename.
