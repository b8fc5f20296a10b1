from labrats.core.config.manager import ConfigManager
from labrats.core.config.models import AppConfig, CompanionConfig, FirebaseConfig, WebConfig
from labrats.core.config.paths import ConfigFsPaths

__all__ = [
    "AppConfig",
    "CompanionConfig",
    "ConfigFsPaths",
    "ConfigManager",
    "FirebaseConfig",
    "WebConfig",
]
