"""Exceptions raised by CacheXS."""


class CacheXSError(Exception):
    """Base class for CacheXS errors."""


class ConfigurationError(CacheXSError, ValueError):
    """Invalid or conflicting cache configuration."""


class SerializationError(CacheXSError, TypeError):
    """A value could not be encoded for the store."""
