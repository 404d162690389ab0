"""Domain exceptions."""


class StorefrontError(Exception):
    """Base class for storefront domain errors."""


class StorageUnavailableError(StorefrontError):
    """Document storage could not be reached."""


class PublishingError(StorefrontError):
    """A publishing update could not be applied."""


class InvalidActiveWindowError(PublishingError):
    """The resulting active window starts after it ends."""

    def __init__(self, version_number: int) -> None:
        super().__init__(f"activeFrom must not be after activeTo (version {version_number})")
        self.version_number = version_number


class ConcurrentPublishingError(PublishingError):
    """Another writer changed the document while the update was being applied."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Document {slug!r} was modified concurrently; retry the update")
        self.slug = slug
