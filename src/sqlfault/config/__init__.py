from .settings import DEFAULT_MAX_CHAIN_DEPTH, Settings, get_settings

__all__ = ["DEFAULT_MAX_CHAIN_DEPTH", "Settings", "get_settings"]
