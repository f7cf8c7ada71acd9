"""Exception types raised by threatflow."""

from __future__ import annotations


class ThreatflowError(Exception):
    """Base class for threatflow errors."""


class RegistryFrozenError(ThreatflowError, RuntimeError):
    """A node was registered after the registry was frozen."""


class RegistryNotFrozenError(ThreatflowError, RuntimeError):
    """Flow detection was attempted before the registry was frozen."""


class FactLoadError(ThreatflowError, OSError):
    """A fact source could not be read (strict loading only)."""


class UnknownFormatError(ThreatflowError, ValueError):
    """A renderer was asked for a format it does not support."""
