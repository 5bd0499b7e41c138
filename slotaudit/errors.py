"""
slotaudit - Errors
Raised only by the layers that read source files and configuration.
The layout, diff and upgrade components never raise.
"""


class SlotAuditError(Exception):
    """Base class for slotaudit errors"""


class SourceError(SlotAuditError):
    """A contract source could not be read or loaded"""


class ConfigError(SlotAuditError):
    """A configuration file exists but is not valid"""
