"""Exception hierarchy for module discovery."""


class DiscoveryError(RuntimeError):
    """Base class for every discovery failure."""


class NoModuleMatchError(DiscoveryError):
    """A search matched nothing in the registry."""


class BulkMismatchError(DiscoveryError):
    """`find_bulk` found fewer modules than it was given filters."""

    def __init__(self, requested: int, found: int):
        super().__init__(f"Got {requested} filters, but only found {found} modules!")
        self.requested = requested
        self.found = found


class ChunkExtractionError(DiscoveryError):
    """The chunk entry point could not be recovered from a factory's source."""


class AlreadyInitializedError(DiscoveryError):
    """The loader was attached (or the readiness gate resolved) twice."""
