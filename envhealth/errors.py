# file: envhealth/errors.py


class EnvHealthError(Exception):
    """Base class for every error raised by the envhealth package."""


class ProviderError(EnvHealthError):
    """An external API failed: transport, HTTP status or an undecodable body."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class NoDataError(EnvHealthError):
    """A provider answered but had nothing usable (no sensors, no PM2.5)."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ConfigurationError(EnvHealthError):
    """A request could not be built, e.g. a missing API key or a bad setting."""


class StorageError(EnvHealthError):
    """The record log could not be read or written."""
