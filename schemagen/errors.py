"""
Exception hierarchy for the Rank Math Schema Generator.

NotFound errors are expected outcomes (no post, no backup) and callers
map them to 404 / exit code 2 instead of treating them as crashes.
"""
from typing import Optional


class SchemaGenError(Exception):
    """Base class for all errors raised by this package."""


class SchemaValidationError(SchemaGenError):
    """A schema graph has required-field violations and must not be persisted."""

    def __init__(self, report):
        self.report = report
        messages = "; ".join(f"{i.entity_type}.{i.field}: {i.message}" for i in report.errors)
        super().__init__(f"Schema validation failed: {messages}")


class UnsupportedEntityError(SchemaGenError):
    """An entity's @type is outside the supported closed set."""

    def __init__(self, schema_type: Optional[str]):
        self.schema_type = schema_type
        super().__init__(f"Unsupported schema type: {schema_type!r}")


class NotFoundError(SchemaGenError):
    """A looked-up record or backup does not exist."""


class RecordNotFoundError(NotFoundError):
    def __init__(self, record_id):
        self.record_id = record_id
        super().__init__(f"Post {record_id} not found")


class BackupNotFoundError(NotFoundError):
    def __init__(self, record_id):
        self.record_id = record_id
        super().__init__(f"No backup found for post ID {record_id}")


class StoreError(SchemaGenError):
    """The external meta store rejected an operation. Message is the store's own."""


class BackupError(StoreError):
    """A requested backup could not be persisted; the write was not issued."""


class PHPSerializationError(ValueError):
    """Malformed PHP serialized data or a value that cannot be serialized."""


class GenerationError(SchemaGenError):
    """The generative model call failed for a given target."""

    def __init__(self, message: str, target: Optional[str] = None):
        self.target = target
        super().__init__(f"{message} (target: {target})" if target else message)


class PageFetchError(SchemaGenError):
    """The page source collaborator could not produce PageData for a URL."""

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(f"{message} (url: {url})")
