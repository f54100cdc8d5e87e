"""Exception types raised by the publisher operations."""


class PublisherError(Exception):
    """Base class for every error raised by this package."""


class SettingsError(PublisherError, ValueError):
    """Settings are missing, malformed, or fail validation."""


class ConnectionFailedError(PublisherError):
    """The database could not be opened or pinged."""


class NotConnectedError(PublisherError):
    def __init__(self, message: str = "not connected") -> None:
        super().__init__(message)


class DiscoveryError(PublisherError):
    """A shape's columns or row count could not be determined."""


class PublishError(PublisherError):
    """Reading, encoding, or emitting records failed, or a pre/post query failed."""
