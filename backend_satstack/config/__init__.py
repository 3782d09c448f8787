"""
Configuration: .env loading and typed settings.
"""

from backend_satstack.config.env import get_database_url, load_satstack_env
from backend_satstack.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_database_url",
    "get_settings",
    "load_satstack_env",
]
