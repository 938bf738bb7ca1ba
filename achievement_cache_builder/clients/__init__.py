"""API clients for achievement/trophy providers."""

from .psn_client import PSNClient
from .steam_client import SteamClient
from .xbox_client import XboxClient

__all__ = [
    "PSNClient",
    "SteamClient",
    "XboxClient",
]
