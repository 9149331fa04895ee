"""Error taxonomy for migration imports.

Item-level errors (``ConsolidationWarning``, ``MappingError``,
``ReferenceUnresolved``, ``PartialInsertFailure``) are collected and counted by
the component that produced them; they never abort a batch. Stage-level errors
(``ParseError``, ``NetworkError``) abort the current file import or stage only.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for every error raised by the migration pipeline."""


class ParseError(MigrationError):
    """Raised when an uploaded file cannot be tokenized at all."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        super().__init__(message if line is None else f"{message} (line {line})")
        self.line = line


class ConsolidationWarning(MigrationError):
    """A flattened export row that could not be attached to any entity."""

    def __init__(self, message: str, *, row_number: int) -> None:
        super().__init__(f"row {row_number}: {message}")
        self.row_number = row_number


class MappingError(MigrationError):
    """A record that lacks a field required by its canonical schema."""

    def __init__(self, message: str, *, index: int, field: str | None = None) -> None:
        super().__init__(f"record {index}: {message}")
        self.index = index
        self.field = field


class ReferenceUnresolved(MigrationError):
    """A navigation link that did not match any imported category or page."""

    def __init__(self, label: str, url: str) -> None:
        super().__init__(f"no internal target for {label!r} ({url})")
        self.label = label
        self.url = url


class NetworkError(MigrationError):
    """The content-extraction collaborator failed or returned garbage."""


class PersistenceError(MigrationError):
    """A storage collaborator rejected a write."""


class PartialInsertFailure(PersistenceError):
    """A single item failed to persist while its siblings continue."""

    def __init__(self, item: str, cause: BaseException | str) -> None:
        super().__init__(f"{item}: {cause}")
        self.item = item


class StageTransitionError(MigrationError):
    """An import stage was asked to make a transition its status forbids."""


class StageGateError(StageTransitionError):
    """An import stage was started before every earlier stage was done."""

    def __init__(self, stage: str, blocking: str, blocking_status: str) -> None:
        super().__init__(
            f"cannot start '{stage}': earlier stage '{blocking}' is {blocking_status}"
        )
        self.stage = stage
        self.blocking = blocking


class PipelineCancelled(MigrationError):
    """Cooperative cancellation was requested while a stage was running."""


__all__ = [
    "ConsolidationWarning",
    "MappingError",
    "MigrationError",
    "NetworkError",
    "ParseError",
    "PartialInsertFailure",
    "PersistenceError",
    "PipelineCancelled",
    "ReferenceUnresolved",
    "StageGateError",
    "StageTransitionError",
]
