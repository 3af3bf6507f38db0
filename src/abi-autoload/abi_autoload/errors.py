class AutoloadError(Exception):
    """Base class for errors raised by abi-autoload."""


class ConfigError(AutoloadError, ValueError):
    """Missing or invalid configuration; never routed through hooks."""


class LoaderError(AutoloadError):
    """An ABI registry or signature database could not be queried."""

    def __init__(self, loader: str, message: str) -> None:
        super().__init__(f"{loader}: {message}")
        self.loader = loader


class ProviderError(AutoloadError):
    """The node provider returned an unusable response."""
