"""Error taxonomy for stable module boundaries."""


class HarvesterError(Exception):
    """Base exception for scroll-harvester."""


class ConfigError(HarvesterError):
    """Raised when configuration is invalid or missing."""


class BrowserError(HarvesterError):
    """Raised for browser/session management failures."""


class CollectError(HarvesterError):
    """Raised for collection lifecycle failures outside a running session."""


class ExtractError(HarvesterError):
    """Raised when a harvest probe returns an unexpected payload shape."""


class DiagnosticsError(HarvesterError):
    """Raised for step-event logging failures."""


class ProposalError(HarvesterError):
    """Raised when a fallback action proposal cannot be obtained or parsed."""
