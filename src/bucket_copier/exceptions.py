"""Custom exceptions for the bucket-copier application."""


class BucketCopierError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(BucketCopierError):
    """Raised for configuration and credential resolution issues."""

    pass


class ListingError(BucketCopierError):
    """Raised when a page of the source bucket listing cannot be fetched."""

    pass


class CopyError(BucketCopierError):
    """Raised when a single object copy fails."""

    pass


class ChannelClosedError(BucketCopierError):
    """Raised on send to, or receive from an exhausted, closed channel."""

    pass
