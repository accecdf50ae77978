"""
Error taxonomy.

Callers react differently depending on where a failure came from:
RuleStoreError aborts an analysis run, DispositionStoreError only degrades
enrichment to the default disposition, IngestError is the uploader's fault.
"""


class InventoryAnalyzerError(Exception):
    """Base class for all inventory analyzer exceptions."""


class ConfigError(InventoryAnalyzerError):
    """Raised when environment configuration is invalid."""


class StoreError(InventoryAnalyzerError):
    """Raised when the storage boundary fails."""


class RuleStoreError(StoreError):
    """Raised when the active rule sets cannot be loaded."""


class DispositionStoreError(StoreError):
    """Raised when disposition records cannot be read or created."""


class NotFound(StoreError):
    """Raised when an administrative update targets a missing record."""


class DuplicateRecord(StoreError):
    """Raised when a unique column would be violated."""


class IngestError(InventoryAnalyzerError):
    """Raised when an uploaded inventory export cannot be parsed."""
