class BizcalError(Exception):
    """Base exception for all bizcal errors."""


class ConfigError(BizcalError, ValueError):
    """A configuration value is outside its documented domain."""


class UnknownPresetError(BizcalError, KeyError):
    """An analytics range preset key is not in the preset table."""

    def __init__(self, preset: str) -> None:
        super().__init__(preset)
        self.preset = preset

    def __str__(self) -> str:
        return f"Unknown range preset: {self.preset!r}"


class EmptyInputError(BizcalError, ValueError):
    """An operation that needs at least one range received none."""
