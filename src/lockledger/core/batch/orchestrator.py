"""Batch orchestration: generating artifacts for a frontier.

The orchestrator walks the frontier in order, asks the ``ArtifactGenerator``
for each identity and records the outcome in the ``PackageDatabase``. A
failing identity is caught, logged and recorded as ``failed``; the batch
always moves on to the next identity.

Per identity the lifecycle is ``pending -> processing -> processed | failed``.
``processing`` only exists while the generator call is running.

The orchestrator performs no I/O of its own. Persistence is delegated to an
optional ``checkpoint`` callback, invoked after every ``checkpoint_every``
successes and, if the run is interrupted, once more before the interrupt
propagates, so that completed work is never lost.

With ``jobs > 1`` generation fans out to a thread pool. Each identity is
submitted exactly once, and the database is only touched on the calling
thread as results arrive. Result lists are sorted back into frontier order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from lockledger.collaborators.base import ArtifactGenerator, ArtifactHandle
from lockledger.core.batch.models import BatchResult, FailedPackage
from lockledger.core.database import PackageDatabase
from lockledger.core.graph import PackageIdentity
from lockledger.exceptions import GenerationError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Checkpoint = Callable[[PackageDatabase], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CallableGenerator:
    """Adapt a plain ``identity -> handle`` function to ``ArtifactGenerator``."""

    def __init__(self, func: Callable[[PackageIdentity], ArtifactHandle]) -> None:
        self._func = func

    def generate(self, identity: PackageIdentity) -> ArtifactHandle:
        return self._func(identity)


class BatchOrchestrator:
    """Drive artifact generation over a frontier with failure isolation.

    Args:
        generator: Collaborator producing one artifact per identity.
        db: The ledger for this run; mutated in place.
        clock: Source of record timestamps (UTC now by default).
        checkpoint: Called with the database to persist progress.
        checkpoint_every: Successes between two checkpoints.
        jobs: Number of concurrent generator calls. 1 means sequential.
    """

    def __init__(
        self,
        generator: ArtifactGenerator,
        db: PackageDatabase,
        *,
        clock: Clock | None = None,
        checkpoint: Checkpoint | None = None,
        checkpoint_every: int = 1,
        jobs: int = 1,
    ) -> None:
        if checkpoint_every < 1:
            raise ValueError("checkpoint_every must be at least 1")
        if jobs < 1:
            raise ValueError("jobs must be at least 1")
        self._generator = generator
        self._db = db
        self._clock = clock or _utcnow
        self._checkpoint = checkpoint
        self._checkpoint_every = checkpoint_every
        self._jobs = jobs
        self._unsaved = 0

    def run(self, frontier: Sequence[PackageIdentity]) -> BatchResult:
        """Attempt every identity in *frontier* and return the outcomes.

        Raises:
            KeyboardInterrupt: Re-raised after progress was checkpointed.
            StorageError: If a checkpoint fails to save the database.
        """
        result = BatchResult()
        self._unsaved = 0
        try:
            if self._jobs == 1 or len(frontier) <= 1:
                self._run_sequential(frontier, result)
            else:
                self._run_pool(frontier, result)
        except KeyboardInterrupt:
            logger.warning(
                "Interrupted after %d of %d package(s); saving progress",
                result.attempted,
                len(frontier),
            )
            self._flush()
            raise

        if self._jobs > 1:
            position = {identity: i for i, identity in enumerate(frontier)}
            result.succeeded.sort(key=position.__getitem__)
            result.failed.sort(key=lambda f: position[f.identity])

        logger.info(
            "Batch finished: %d attempted, %d succeeded, %d failed",
            result.attempted,
            len(result.succeeded),
            len(result.failed),
        )
        return result

    # -- Scheduling ---------------------------------------------------------

    def _run_sequential(
        self, frontier: Sequence[PackageIdentity], result: BatchResult
    ) -> None:
        total = len(frontier)
        for idx, identity in enumerate(frontier, start=1):
            logger.info("[%d/%d] Processing: %s %s", idx, total, identity.name, identity.version)
            self._record(identity, self._attempt(identity), result)

    def _run_pool(self, frontier: Sequence[PackageIdentity], result: BatchResult) -> None:
        executor = ThreadPoolExecutor(max_workers=self._jobs, thread_name_prefix="lockledger")
        futures: dict[Future[ArtifactHandle | GenerationError], PackageIdentity] = {}
        try:
            for identity in frontier:
                futures[executor.submit(self._attempt, identity)] = identity
            for done, future in enumerate(as_completed(futures), start=1):
                identity = futures[future]
                logger.info("[%d/%d] Finished: %s %s", done, len(futures), identity.name, identity.version)
                self._record(identity, future.result(), result)
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            self._collect_finished(futures, result)
            raise
        executor.shutdown(wait=True)

    def _collect_finished(
        self,
        futures: dict[Future[ArtifactHandle | GenerationError], PackageIdentity],
        result: BatchResult,
    ) -> None:
        """Record attempts that finished but were not taken from the pool yet."""
        for future, identity in futures.items():
            if identity in result.records or not future.done() or future.cancelled():
                continue
            if future.exception() is not None:
                continue
            self._record(identity, future.result(), result, checkpoint=False)

    # -- Per-identity steps -------------------------------------------------

    def _attempt(self, identity: PackageIdentity) -> ArtifactHandle | GenerationError:
        """Call the generator, turning any failure into a ``GenerationError``."""
        try:
            return self._generator.generate(identity)
        except GenerationError as exc:
            return exc
        except Exception as exc:
            logger.debug("Generator raised for %s", identity, exc_info=True)
            return GenerationError(identity, exc)

    def _record(
        self,
        identity: PackageIdentity,
        outcome: ArtifactHandle | GenerationError,
        result: BatchResult,
        *,
        checkpoint: bool = True,
    ) -> None:
        now = self._clock()
        result.attempted += 1
        if isinstance(outcome, GenerationError):
            reason = outcome.reason
            logger.warning("Failed to package %s %s: %s", identity.name, identity.version, reason)
            result.records[identity] = self._db.mark_failed(identity, reason, now)
            result.failed.append(FailedPackage(identity=identity, cause=reason))
            return

        logger.info("Packaged %s %s", identity.name, identity.version)
        result.records[identity] = self._db.mark_processed(identity, now)
        result.succeeded.append(identity)
        result.artifacts[identity] = outcome
        self._unsaved += 1
        if checkpoint and self._unsaved >= self._checkpoint_every:
            self._flush()

    def _flush(self) -> None:
        if self._checkpoint is None or self._unsaved == 0:
            return
        self._checkpoint(self._db)
        self._unsaved = 0


def run(
    frontier: Sequence[PackageIdentity],
    generate: ArtifactGenerator | Callable[[PackageIdentity], ArtifactHandle],
    db: PackageDatabase,
) -> BatchResult:
    """Process *frontier* sequentially with *generate*, updating *db*.

    *generate* may be an ``ArtifactGenerator`` or a plain function.
    """
    generator = generate if isinstance(generate, ArtifactGenerator) else _CallableGenerator(generate)
    return BatchOrchestrator(generator, db).run(frontier)
