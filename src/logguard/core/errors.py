"""Exceptions raised by the LogGuard masking engine."""


class InvalidPatternError(ValueError):
    """A detection pattern is empty or is not a valid regular expression."""

    def __init__(self, pattern, reason: str):
        super().__init__(f"Invalid regex pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ConfigError(RuntimeError):
    """The desensitize configuration could not be read or validated."""
