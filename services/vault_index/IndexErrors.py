class VaultIndexError(Exception):
    """Base exception of the indexing engine."""

    pass


class SchemaProbeError(VaultIndexError):
    """The probe embedding failed or returned an empty vector. The provider is unusable."""

    pass
