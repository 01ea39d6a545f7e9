"""Domain models for the MAP compliance tool.

This package contains the configuration, catalog, annotation and run result
models shared by the import pipeline, the reconciliation engine and the CLI.
"""

from .annotation import ComplianceAnnotation
from .config_models import AppConfig, SourceConfig, StoreConfig, UploadColumnMapping
from .log_entry import LogEntry
from .product import ProductRecord
from .run_result import ImportResult, SourceResult, SourceStatus

__all__ = [
    # Configuration models
    "AppConfig",
    "SourceConfig",
    "StoreConfig",
    "UploadColumnMapping",
    # Catalog models
    "ProductRecord",
    "ComplianceAnnotation",
    # Run models
    "LogEntry",
    "ImportResult",
    "SourceResult",
    "SourceStatus",
]
