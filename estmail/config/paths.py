"""Path constants for estmail config.

Follows the XDG Base Directory specification:
- Config: ~/.config/estmail/
- Index: ~/.estmail/casket (Hyper Estraier database directory)
"""

from pathlib import Path


# XDG-compliant config directory
CONFIG_DIR = Path.home() / ".config" / "estmail"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Default location of the search index (the engine calls it a "casket")
DEFAULT_INDEX_DIR = Path.home() / ".estmail" / "casket"

# Default roots of the two flat-file mail backends and the article caches
DEFAULT_NNML_DIR = Path.home() / "Mail"
DEFAULT_NNMH_DIR = Path.home() / "Mail"
DEFAULT_CACHE_DIR = Path.home() / "News" / "cache"
DEFAULT_AGENT_DIR = Path.home() / "News" / "agent"
