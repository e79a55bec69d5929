"""Batch verification of approved UTR matches."""

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from festreg import STATUS_COMPLETED, RecordRef, Registration
from festreg.auth import AdminContext, require_edit
from festreg.store import RegistrationStore, StoreError

log = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class CommitFailure:
    """An approved registration whose status update failed."""

    ref: RecordRef
    error: str


@dataclass
class CommitResult:
    """Outcome of a verification batch."""

    succeeded: list[RecordRef] = field(default_factory=list)
    failed: list[CommitFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


def _dedupe(refs: list[RecordRef]) -> list[RecordRef]:
    seen: set[RecordRef] = set()
    unique = []
    for ref in refs:
        if ref not in seen:
            seen.add(ref)
            unique.append(ref)
    return unique


def verify_payments(
    store: RegistrationStore,
    refs: list[RecordRef],
    context: AdminContext,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> CommitResult:
    """Mark approved registrations as completed.

    Each update is independent: a failed update, whatever it raised, is
    recorded against its registration and does not stop or roll back the
    others. The
    capability check runs before any update is issued.

    Args:
        store: The registration store.
        refs: Registrations the operator approved.
        context: Operator context; must carry the edit capability.
        max_workers: Upper bound on concurrent updates.

    Returns:
        Succeeded and failed references, each in input order.

    Raises:
        AuthorizationError: If the context cannot edit.
    """
    require_edit(context)
    refs = _dedupe(refs)
    result = CommitResult()
    if not refs:
        return result

    def _update(ref: RecordRef) -> None:
        store.update_status(context, ref, STATUS_COMPLETED)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(refs))) as pool:
        futures = [(ref, pool.submit(_update, ref)) for ref in refs]
        for ref, future in futures:
            try:
                future.result()
            except StoreError as exc:
                log.error("Verification of %s/%s failed: %s", ref.event_id, ref.id, exc)
                result.failed.append(CommitFailure(ref=ref, error=str(exc)))
            except Exception as exc:
                log.exception("Unexpected error verifying %s/%s", ref.event_id, ref.id)
                result.failed.append(CommitFailure(ref=ref, error=f"{type(exc).__name__}: {exc}"))
            else:
                result.succeeded.append(ref)

    log.info(
        "Verification batch done: %d succeeded, %d failed",
        len(result.succeeded), len(result.failed),
    )
    return result


def apply_result(registrations: list[Registration], result: CommitResult) -> list[Registration]:
    """Return a copy of a cached registration list with the batch applied."""
    done = set(result.succeeded)
    return [
        dataclasses.replace(r, payment_status=STATUS_COMPLETED) if r.ref in done else r
        for r in registrations
    ]
