class GardenError(Exception):
    """Base exception for the Moonlit Garden project."""


class ConfigError(GardenError):
    """Raised when configuration or reference data fails validation."""


class UnknownVarietyError(GardenError, KeyError):
    """Raised when a variety id is not registered in the catalog."""


class PlotUnavailableError(GardenError):
    """Raised when a plot cannot accept the requested action (locked, occupied or empty)."""
