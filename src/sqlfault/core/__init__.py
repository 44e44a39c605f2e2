from .context import QueryContext

__all__ = ["QueryContext"]
