"""DNS adapters - Mail-exchange record resolution."""

from .resolver import DnsMxResolver

__all__ = ["DnsMxResolver"]
