"""Checksum-based classification of one template path.

Checksums are the only signal. Timestamps and authorship are ignored because
clock skew and force-pushes make them unreliable for this decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from teleporter.domain.checksum import checksum_or_none
from teleporter.domain.model import new_record

from .contracts import Classification, PathDecision

if TYPE_CHECKING:
    from datetime import datetime

    from teleporter.domain.model import TemplateRecord


def classify(
    *,
    master_checksum: str,
    target_checksum: str | None,
    record: TemplateRecord | None,
) -> Classification:
    """Return exactly one classification, checked in precedence order."""

    if target_checksum == master_checksum:
        return Classification.ALREADY_IN_SYNC
    if target_checksum is not None and (
        record is None or target_checksum != record.deployed_checksum
    ):
        return Classification.MANUAL_OVERRIDE
    return Classification.NEEDS_DEPLOY


def decide(
    path: str,
    *,
    master_checksum: str,
    target_content: bytes | None,
    record: TemplateRecord | None,
) -> PathDecision:
    target_checksum = checksum_or_none(target_content)
    return PathDecision(
        path=path,
        classification=classify(
            master_checksum=master_checksum,
            target_checksum=target_checksum,
            record=record,
        ),
        master_checksum=master_checksum,
        target_checksum=target_checksum,
        record=record,
    )


def observation_update(
    decision: PathDecision,
    *,
    repository: str,
    category: str,
    at: datetime,
) -> TemplateRecord | None:
    """Record write implied by a decision that deploys nothing.

    Returns ``None`` when the stored record already reflects what was observed.
    ``NEEDS_DEPLOY`` never produces a write here; its state changes only after the
    gateway accepted the update.
    """

    record = decision.record or new_record(repository, decision.path, category)
    digest = decision.master_checksum

    if decision.classification is Classification.ALREADY_IN_SYNC:
        if decision.record is not None and (
            record.master_checksum == digest
            and record.deployed_checksum == digest
            and record.target_checksum == digest
        ):
            return None
        return record.mark_in_sync(digest, at=at)

    if decision.classification is Classification.MANUAL_OVERRIDE:
        # master/deployed stay put so the conflict keeps being detected
        if decision.record is not None and record.target_checksum == decision.target_checksum:
            return None
        return record.observe_target(decision.target_checksum, at=at)

    return None
