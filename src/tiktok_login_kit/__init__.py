"""TikTok Login Kit, Display API and Content Posting API client."""

from tiktok_login_kit.connector import Connector
from tiktok_login_kit.errors import ErrorKind, TikTokError
from tiktok_login_kit.session import InMemorySessionStore, SessionStore

__version__ = "0.1.0"

__all__ = [
    "Connector",
    "ErrorKind",
    "InMemorySessionStore",
    "SessionStore",
    "TikTokError",
    "__version__",
]
