"""
Document composition coordinator.

IMPORTANT:
The composer is a DUMB AUTHORITY.

It MUST NOT:
- inspect variable bindings
- interpret rendered content
- retry failed jobs

Its sole responsibilities are:
- enforcing stage order: flatten -> generate -> reconcile
- enforcing the hard stop when any job failed
- writing results back into the request tree
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx

from docgen.app.config import Settings
from docgen.app.coordinator.flattener import RequestFlattener
from docgen.app.coordinator.orchestrator import GenerationOrchestrator
from docgen.app.coordinator.reconciler import ResultReconciler
from docgen.app.errors import GenerationFailed
from docgen.app.events import (
    GenerationEvent,
    GenerationEventEmitter,
    GenerationEventType,
    NullEventEmitter,
)
from docgen.app.registry.registry import build_render_engines
from docgen.app.schemas.generation import DocumentFormat, JobResult
from docgen.app.schemas.request_tree import RequestTree
from docgen.app.storage.blob_store import build_document_store, create_s3_client
from docgen.app.templates.cache import TemplateCache
from docgen.app.templates.downloaders import (
    BlobTemplateDownloader,
    DownloaderRegistry,
    FileSystemTemplateDownloader,
    HttpTemplateDownloader,
)
from docgen.app.templates.resolver import TemplateResolver

logger = logging.getLogger(__name__)


class DocumentComposer:
    """
    Central composition coordinator.

    Execution order:
        1. Flatten the request tree into ordered jobs (fail fast on shape)
        2. Run every job concurrently; failures are collected, not raised
        3. Hard stop if any job failed (GenerationFailed)
        4. Reconcile generated locations into the tree
    """

    def __init__(
        self,
        flattener: RequestFlattener,
        orchestrator: GenerationOrchestrator,
        reconciler: ResultReconciler,
    ) -> None:
        """
        Direct constructor.

        Intended for tests and explicit wiring.
        """
        self._flattener = flattener
        self._orchestrator = orchestrator
        self._reconciler = reconciler

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        s3_client: Optional[Any] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> "DocumentComposer":
        """
        Construct a fully wired DocumentComposer from runtime settings.

        Downloaders and render engines are registered explicitly here.
        """
        s3 = s3_client if s3_client is not None else create_s3_client(settings)

        registry = DownloaderRegistry(
            [
                BlobTemplateDownloader(s3, default_bucket=settings.templates_bucket),
                HttpTemplateDownloader(
                    connect_timeout=settings.http_connect_timeout,
                    read_timeout=settings.http_read_timeout,
                    client=http_client,
                ),
                FileSystemTemplateDownloader(),
            ]
        )
        cache = TemplateCache(
            settings.cache_dir,
            ttl=timedelta(seconds=settings.cache_ttl_seconds),
        )

        orchestrator = GenerationOrchestrator(
            TemplateResolver(registry, cache),
            build_render_engines(settings),
            settings.artifact_dir,
            blob_store=build_document_store(settings, s3),
            default_format=DocumentFormat(settings.default_output_format),
            max_workers=settings.max_workers,
        )

        return cls(
            flattener=RequestFlattener(),
            orchestrator=orchestrator,
            reconciler=ResultReconciler(),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def compose(
        self,
        tree: RequestTree,
        *,
        batch_id: Optional[str] = None,
        emitter: Optional[GenerationEventEmitter] = None,
    ) -> RequestTree:
        """
        Generate every template item of ``tree`` and return the tree with
        result locations filled in.

        The emitter is strictly observational.

        Raises:
            InvalidTemplateData family: malformed tree, before any job runs
            GenerationFailed:           one or more jobs failed; the tree
                                        is left untouched
            StructuralMismatch:         outcomes could not be mapped back
        """
        batch_id = batch_id or uuid.uuid4().hex
        emitter = emitter or NullEventEmitter()

        jobs = self._flattener.flatten(tree)

        await emitter.emit(
            GenerationEvent(
                batch_id=batch_id,
                event_type=GenerationEventType.BATCH_STARTED,
                details={"jobs": len(jobs)},
            )
        )

        results = await self._orchestrator.run_all(jobs)
        await self._emit_job_events(emitter, batch_id, results)

        failures = [
            (result.index, result.template_address, result.error)
            for result in results
            if result.error is not None
        ]
        if failures:
            logger.error(
                "Composition %s failed: %d of %d jobs failed",
                batch_id,
                len(failures),
                len(jobs),
            )
            await emitter.emit(
                GenerationEvent(
                    batch_id=batch_id,
                    event_type=GenerationEventType.BATCH_FAILED,
                    details={"failed": len(failures), "jobs": len(jobs)},
                )
            )
            raise GenerationFailed(failures, total=len(jobs))

        reconciled = self._reconciler.reconcile(
            tree,
            [result.outcome for result in results if result.outcome is not None],
        )

        await emitter.emit(
            GenerationEvent(
                batch_id=batch_id,
                event_type=GenerationEventType.BATCH_COMPLETED,
                details={"jobs": len(jobs)},
            )
        )
        return reconciled

    @staticmethod
    async def _emit_job_events(
        emitter: GenerationEventEmitter,
        batch_id: str,
        results: List[JobResult],
    ) -> None:
        for result in results:
            details: Dict[str, Any]
            if result.ok:
                details = {"index": result.index}
                if result.outcome is not None and result.outcome.persist_error:
                    details["persist_error"] = result.outcome.persist_error
                event_type = GenerationEventType.JOB_SUCCEEDED
            else:
                details = {
                    "index": result.index,
                    "error": result.error.code if result.error else None,
                }
                event_type = GenerationEventType.JOB_FAILED

            await emitter.emit(
                GenerationEvent(
                    batch_id=batch_id,
                    event_type=event_type,
                    details=details,
                )
            )
