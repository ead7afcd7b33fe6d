"""
Exceptions raised by the coverage pipeline.

Only fatal conditions are modelled here. Row-level problems (unparseable
numbers, unmapped statuses, join misses) never raise; the affected rows are
dropped by the stage that detects them.
"""


class PipelineError(Exception):
    """Base class for errors that abort a pipeline run."""


class ConfigurationError(PipelineError):
    """A required setting or input file is missing or unusable."""


class SchemaError(PipelineError):
    """A source table lacks a column the loader cannot do without."""

    def __init__(self, source: str, column: str, available=None):
        self.source = source
        self.column = column
        message = f"{source}: required column {column!r} not found"
        if available is not None:
            message += f" (available: {', '.join(map(str, available))})"
        super().__init__(message)
