"""Port for persisting template state records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from teleporter.domain.model import TemplateRecord


class StoreError(RuntimeError):
    """Raised when the state backend fails to read or write a record."""


class ConflictError(StoreError):
    """Conditional write lost against a concurrent update of the same record."""

    def __init__(
        self,
        repository: str,
        template_path: str,
        *,
        expected_version: int | None,
        actual_version: int | None,
    ) -> None:
        super().__init__(
            f"Version conflict for {repository}:{template_path} "
            f"(expected {expected_version}, found {actual_version})"
        )
        self.repository = repository
        self.template_path = template_path
        self.expected_version = expected_version
        self.actual_version = actual_version


@runtime_checkable
class StateStore(Protocol):
    """Durable store holding one record per (repository, template path).

    ``put`` is the only mutation primitive besides ``delete``: it succeeds when the
    stored version equals ``expected_version`` (or no record exists and
    ``expected_version`` is ``None``) and returns the record with its new version.
    """

    def get(self, repository: str, template_path: str) -> TemplateRecord | None: ...

    def put(self, record: TemplateRecord, *, expected_version: int | None) -> TemplateRecord: ...

    def delete(self, repository: str, template_path: str) -> None: ...

    def list_by_category(self, category: str) -> list[TemplateRecord]: ...
