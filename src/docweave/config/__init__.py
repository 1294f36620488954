from docweave.config.io import build_config, deep_merge, find_config_file, load_config
from docweave.config.models import (
    CategoryConfig,
    ChannelConfig,
    DocweaveConfig,
    LibraryConfig,
    LocaleConfig,
    SiteMode,
    SiteTheme,
)

__all__ = [
    "CategoryConfig",
    "ChannelConfig",
    "DocweaveConfig",
    "LibraryConfig",
    "LocaleConfig",
    "SiteMode",
    "SiteTheme",
    "build_config",
    "deep_merge",
    "find_config_file",
    "load_config",
]
