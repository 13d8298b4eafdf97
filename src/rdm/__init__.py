"""rdm: a command-line Redmine client.

Provides:
- `.rdm.json` discovery and environment settings
- structured logging
- a freshness-checked cache of Redmine reference data
- case-insensitive status-name resolution for issue updates
"""

__version__ = "0.1.0"

from rdm.config import RdmSettings, UserConfig

__all__ = ["__version__", "RdmSettings", "UserConfig"]
