"""
Browser Module

Playwright browser ownership, cookie normalization and the playback
driver used by a detox run.
"""

from .controller import BrowserController, BrowserConfig
from .cookies import CredentialEntry, normalize_credentials, normalize_same_site
from .playback import PlaybackConfig, PlaybackDriver, compute_dwell, format_seconds

__all__ = [
    "BrowserController",
    "BrowserConfig",
    "CredentialEntry",
    "normalize_credentials",
    "normalize_same_site",
    "PlaybackConfig",
    "PlaybackDriver",
    "compute_dwell",
    "format_seconds",
]
