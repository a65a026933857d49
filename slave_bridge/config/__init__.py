from slave_bridge.config.config_loader import get_app_config, reload_app_config
from slave_bridge.config.config_schema import (
    AppConfig,
    LoggingConfig,
    PolicyConfig,
    ServerConfig,
    SiteConfig,
    SlaveConfig,
)

__all__ = [
    "get_app_config",
    "reload_app_config",
    "AppConfig",
    "LoggingConfig",
    "PolicyConfig",
    "ServerConfig",
    "SiteConfig",
    "SlaveConfig",
]
