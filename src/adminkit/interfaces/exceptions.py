"""Exceptions for interface implementations."""


class InterfaceError(Exception):
    """Base exception for all interface-related errors."""


class ClusterProviderError(InterfaceError):
    """Exception for cluster provider operations."""


class ResourceExistsError(ClusterProviderError):
    """A create call lost the race against another writer (HTTP 409)."""
