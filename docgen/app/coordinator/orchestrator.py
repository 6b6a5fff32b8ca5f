"""
Generation orchestration.

Executes generation jobs: resolve the template, render it, write the
artifact locally, and optionally persist it.

Batch execution runs each job on a worker thread inside an anyio task
group. Concurrency is bounded by a capacity limiter. Every result is
written into a pre-sized slot at the job's index, so ``results[i]``
always belongs to ``jobs[i]`` regardless of completion order.

A failing job never aborts the batch; its error is captured as a value.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import anyio
import anyio.to_thread

from docgen.app.errors import ArtifactWriteError, DocumentGenerationError, RenderFailed
from docgen.app.rendering.engine import RenderEngine
from docgen.app.schemas.generation import (
    DocumentFormat,
    GenerationJob,
    GenerationOutcome,
    JobResult,
)
from docgen.app.storage.blob_store import BlobStore
from docgen.app.templates.resolver import TemplateResolver

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationOrchestrator:
    def __init__(
        self,
        resolver: TemplateResolver,
        engines: Dict[DocumentFormat, RenderEngine],
        artifact_dir: Path,
        *,
        blob_store: Optional[BlobStore] = None,
        default_format: DocumentFormat = DocumentFormat.PDF,
        max_workers: int = 4,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._resolver = resolver
        self._engines = dict(engines)
        self.artifact_dir = Path(artifact_dir)
        self._blob_store = blob_store
        self.default_format = default_format
        self.max_workers = max_workers
        self._now = now

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    def run(self, job: GenerationJob) -> GenerationOutcome:
        """
        Execute one job synchronously.

        Raises any DocumentGenerationError from resolution, rendering or
        the local artifact write. Persistence failures do not raise; they
        are recorded on the outcome.
        """
        template = self._resolver.resolve(job.template_address)

        fmt = DocumentFormat.parse(job.output_format, self.default_format)
        engine = self._engines.get(fmt)
        if engine is None:
            raise RenderFailed(f"No render engine registered for format '{fmt.value}'")

        logger.info(
            "Rendering job %d as %s (%d bindings, %d assets)",
            job.index,
            fmt.value,
            len(job.bindings),
            len(job.assets),
        )

        try:
            content = engine.render(
                template=template,
                bindings=job.bindings,
                assets=job.assets,
            )
        except DocumentGenerationError:
            raise
        except Exception as exc:
            raise RenderFailed(
                f"Render engine failed for job {job.index}: {exc}"
            ) from exc

        local_path = self._write_artifact(content, fmt)

        persisted_location: Optional[str] = None
        persist_error: Optional[str] = None

        if job.persist:
            if self._blob_store is None:
                persist_error = "no blob store configured"
                logger.warning(
                    "Persistence requested for job %d but no blob store is configured",
                    job.index,
                )
            else:
                try:
                    persisted_location = self._blob_store.persist(local_path)
                except DocumentGenerationError as exc:
                    persist_error = str(exc)
                    logger.warning(
                        "Persistence failed for job %d; keeping local artifact",
                        job.index,
                        extra={"local_path": str(local_path), "error": str(exc)},
                    )

        return GenerationOutcome(
            content=content,
            local_path=local_path,
            persisted_location=persisted_location,
            persist_error=persist_error,
        )

    def artifact_name(self, fmt: DocumentFormat) -> str:
        """Sortable, unique artifact file name: UTC timestamp plus random hex."""
        stamp = self._now().strftime("%Y%m%dT%H%M%S%fZ")
        return f"{stamp}-{secrets.token_hex(8)}.{fmt.extension}"

    def _write_artifact(self, content: bytes, fmt: DocumentFormat) -> Path:
        try:
            self.artifact_dir.mkdir(parents=True, exist_ok=True)
            root = self.artifact_dir.resolve()
            path = (root / self.artifact_name(fmt)).resolve()
            path.relative_to(root)
            path.write_bytes(content)
        except (OSError, ValueError) as exc:
            raise ArtifactWriteError(
                f"Cannot write generated artifact into {self.artifact_dir}: {exc}"
            ) from exc

        logger.debug("Artifact written: %s (%d bytes)", path.name, len(content))
        return path

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def run_all(self, jobs: Sequence[GenerationJob]) -> List[JobResult]:
        """
        Execute ``jobs`` concurrently, at most ``max_workers`` at a time.

        Returns one JobResult per job, in job order.
        """
        results: List[Optional[JobResult]] = [None] * len(jobs)
        limiter = anyio.CapacityLimiter(self.max_workers)

        async def execute(slot: int, job: GenerationJob) -> None:
            results[slot] = await anyio.to_thread.run_sync(
                self._run_captured, job, limiter=limiter
            )

        async with anyio.create_task_group() as tg:
            for slot, job in enumerate(jobs):
                tg.start_soon(execute, slot, job)

        failed = sum(1 for result in results if result is not None and not result.ok)
        logger.info(
            "Batch finished: %d jobs, %d failed", len(jobs), failed
        )
        return [result for result in results if result is not None]

    def _run_captured(self, job: GenerationJob) -> JobResult:
        try:
            outcome = self.run(job)
        except DocumentGenerationError as exc:
            logger.error(
                "Generation job %d failed (%s): %s", job.index, exc.code, exc
            )
            return JobResult(
                index=job.index,
                template_address=job.template_address,
                error=exc,
            )
        return JobResult(
            index=job.index,
            template_address=job.template_address,
            outcome=outcome,
        )
