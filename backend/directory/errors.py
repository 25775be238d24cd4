from __future__ import annotations


class DirectoryError(Exception):
    """Base class for errors raised by the discovery and ranking engine."""


class NotFoundError(DirectoryError):
    kind = "resource"


class InvalidLocation(NotFoundError):
    kind = "location"

    def __init__(self, city: str | None, state: str) -> None:
        super().__init__(f"Unknown location: {city}, {state}" if city else f"Unknown state: {state}")
        self.city = city
        self.state = state


class CategoryNotFound(NotFoundError):
    kind = "category"

    def __init__(self, category: str) -> None:
        super().__init__(f"Unknown category: {category}")
        self.category = category


class BusinessNotFound(NotFoundError):
    kind = "business"

    def __init__(self, slug: str) -> None:
        super().__init__(f"Unknown business: {slug}")
        self.slug = slug


class ProviderUnavailable(DirectoryError):
    """The external business-data provider could not serve a request."""


class ProviderAuthError(ProviderUnavailable):
    pass


class RepositoryError(DirectoryError):
    """Datastore I/O failure. Always propagated to the caller."""
