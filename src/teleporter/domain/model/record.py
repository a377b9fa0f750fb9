"""Per-template state records tracked for every target repository."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

type RecordKey = tuple[str, str]


class RecordStatus(StrEnum):
    """Reporting view derived from the checksums stored on a record."""

    NEVER_DEPLOYED = "never_deployed"
    IN_SYNC = "in_sync"
    DEPLOYED = "deployed"
    CONFLICTED = "conflicted"


@dataclass(frozen=True, slots=True, kw_only=True)
class TemplateRecord:
    """State of one template path inside one target repository.

    ``version`` is 0 until the record has been stored; stores bump it on every
    successful conditional write.
    """

    repository: str
    template_path: str
    category: str
    master_checksum: str | None = None
    deployed_checksum: str | None = None
    target_checksum: str | None = None
    last_updated: datetime | None = None
    version: int = 0

    @property
    def key(self) -> RecordKey:
        return (self.repository, self.template_path)

    @property
    def is_stored(self) -> bool:
        return self.version > 0

    @property
    def status(self) -> RecordStatus:
        target = self.target_checksum
        if target is not None and target not in (self.master_checksum, self.deployed_checksum):
            return RecordStatus.CONFLICTED
        if target is not None and target == self.master_checksum:
            return RecordStatus.IN_SYNC
        if self.deployed_checksum is not None and self.deployed_checksum == self.master_checksum:
            return RecordStatus.DEPLOYED
        return RecordStatus.NEVER_DEPLOYED

    def mark_in_sync(self, digest: str, *, at: datetime) -> TemplateRecord:
        """Target already carries ``digest``; master and deployed catch up to it."""

        return replace(
            self,
            master_checksum=digest,
            deployed_checksum=digest,
            target_checksum=digest,
            last_updated=at,
        )

    def mark_deployed(self, digest: str, *, at: datetime) -> TemplateRecord:
        # the target has not been observed since the update was submitted
        return replace(
            self,
            master_checksum=digest,
            deployed_checksum=digest,
            target_checksum=None,
            last_updated=at,
        )

    def observe_target(self, digest: str | None, *, at: datetime) -> TemplateRecord:
        return replace(self, target_checksum=digest, last_updated=at)

    def stored_as(self, version: int) -> TemplateRecord:
        return replace(self, version=version)


def new_record(repository: str, template_path: str, category: str) -> TemplateRecord:
    """Blank record for a pair that has never been written."""

    return TemplateRecord(repository=repository, template_path=template_path, category=category)
