class TurnguardError(Exception):
    """Base error for the decision pipeline."""


class ConfigError(TurnguardError, ValueError):
    """Raised when configuration or a lookup table is inconsistent."""
