"""
Ingestion Pipeline Coordinator
==============================

Runs the four ingestion stages in order, at most one run at a time:

    Step 1/4: fetch AST snapshot        (ASTSourceClient.fetch_ast)
    Step 2/4: build code graph          (GraphBuilder.build_graph)
    Step 3/4: enrich methods            (SemanticEnricher.enrich_methods)
    Step 4/4: vectorize                 (Vectorizer.vectorize_enriched_methods)

State machine: Idle -> Running -> Idle. A failed stage aborts the run and
is only visible through ``status()`` and the logs; there is no retry and
no resume, a new trigger starts again from step 1.

Usage:
    coordinator = IngestionCoordinator(ast_source, builder, enricher, vectorizer,
                                       ast_endpoint="http://ast-service:8080/api/v1")

    response = coordinator.trigger()       # returns before any stage runs
    print(coordinator.status())
"""

import asyncio
import threading
import time
import structlog
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

log = structlog.get_logger()

ALREADY_RUNNING_MESSAGE = "Ingestion pipeline is already running"
STARTED_MESSAGE = "Ingestion pipeline started successfully"


@dataclass
class IngestionRunState:
    """
    Singleton run state owned by the coordinator.

    ``is_running`` only changes through ``try_acquire()`` / ``release()``.
    The lock is a ``threading.Lock`` so triggers from worker threads and
    from the event loop see the same flag.
    """
    current_stage: Optional[str] = None
    started_at: Optional[datetime] = None
    last_run_time: Optional[datetime] = None
    last_duration_seconds: Optional[float] = None
    last_run_id: Optional[str] = None
    last_error: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        """Check-and-set; True if the caller now owns the run."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self.current_stage = None
        if self._lock.locked():
            self._lock.release()


@dataclass
class TriggerResponse:
    """Answer to a manual trigger."""
    success: bool
    message: str
    execution_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.execution_id is not None:
            data["execution_id"] = self.execution_id
        if self.status is not None:
            data["status"] = self.status
        return data


class IngestionCoordinator:
    """
    Single-flight runner for the ingestion stages.

    Args:
        ast_source: Object with ``async fetch_ast(endpoint)``
        graph_builder: Object with ``async build_graph(snapshot)``
        enricher: Object with ``async enrich_methods()``
        vectorizer: Object with ``async vectorize_enriched_methods()``
        ast_endpoint: Base URL passed to the AST source
        scheduling_enabled: Allow ``start_scheduler()``
        schedule_interval_seconds: Delay between scheduled runs
    """

    def __init__(
        self,
        ast_source: Any,
        graph_builder: Any,
        enricher: Any,
        vectorizer: Any,
        ast_endpoint: str,
        scheduling_enabled: bool = False,
        schedule_interval_seconds: float = 3600.0,
    ):
        self.ast_source = ast_source
        self.graph_builder = graph_builder
        self.enricher = enricher
        self.vectorizer = vectorizer
        self.ast_endpoint = ast_endpoint
        self.scheduling_enabled = scheduling_enabled
        self.schedule_interval_seconds = schedule_interval_seconds

        self.state = IngestionRunState()
        self._task: Optional[asyncio.Task] = None
        self._thread: Optional[threading.Thread] = None
        self._scheduler_task: Optional[asyncio.Task] = None

    # ====================================================
    # TRIGGER / RUN
    # ====================================================

    def trigger(self) -> TriggerResponse:
        """
        Start a run in the background and return immediately.

        With a running event loop the run is a task on that loop; without
        one it runs on a dedicated worker thread. The run lock is taken
        here, before dispatch, and released by the run. Never raises.
        """
        log.info("Manual ingestion triggered")

        if not self.state.try_acquire():
            log.info(ALREADY_RUNNING_MESSAGE)
            return TriggerResponse(
                success=False,
                message=ALREADY_RUNNING_MESSAGE,
                status=self.status(),
            )

        execution_id = str(uuid4())
        try:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None

            if loop is not None:
                self._task = loop.create_task(self._execute_stages(execution_id))
            else:
                self._thread = threading.Thread(
                    target=self._run_in_thread,
                    args=(execution_id,),
                    name=f"ingestion-{execution_id[:8]}",
                    daemon=True,
                )
                self._thread.start()
        except Exception as e:
            self.state.release()
            log.error(f"Failed to dispatch ingestion pipeline: {e}", exc_info=True)
            return TriggerResponse(
                success=False,
                message=f"Failed to start ingestion pipeline: {e}",
                status=self.status(),
            )

        return TriggerResponse(
            success=True,
            message=STARTED_MESSAGE,
            execution_id=execution_id,
        )

    async def run_pipeline(self) -> None:
        """
        Run all stages in the caller's task.

        Used by the scheduler and the CLI. If a run is already active this
        logs a warning and returns without doing anything.
        """
        if not self.state.try_acquire():
            log.warning("Ingestion pipeline is already running, skipping this execution")
            return

        await self._execute_stages(str(uuid4()))

    async def wait_for_completion(self) -> None:
        """Wait for the last triggered run, if it is still in flight."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.shield(task)

        thread = self._thread
        if thread is not None and thread.is_alive():
            await asyncio.get_running_loop().run_in_executor(None, thread.join)

    def _run_in_thread(self, execution_id: str) -> None:
        asyncio.run(self._execute_stages(execution_id))

    async def _execute_stages(self, execution_id: str) -> None:
        """Run stages 1-4. Caller must hold the run lock; it is released here."""
        state = self.state
        state.started_at = datetime.now(timezone.utc)
        state.last_run_id = execution_id
        state.last_error = None
        start = time.monotonic()

        log.info("=== Starting Code Knowledge Ingestion Pipeline ===")
        log.info(f"Execution: {execution_id}, AST endpoint: {self.ast_endpoint}")

        try:
            state.current_stage = "fetch_ast"
            log.info("Step 1/4: Fetching AST snapshot...")
            snapshot = await self.ast_source.fetch_ast(self.ast_endpoint)

            if snapshot is None or snapshot.is_empty:
                log.warning("No AST data received from AST service, stopping run")
                return

            log.info(
                f"Received AST with {len(snapshot.classes)} classes, "
                f"{len(snapshot.methods)} methods, "
                f"{len(snapshot.api_endpoints or [])} endpoints"
            )

            state.current_stage = "build_graph"
            log.info("Step 2/4: Building code graph...")
            await self.graph_builder.build_graph(snapshot)

            state.current_stage = "enrich_methods"
            log.info("Step 3/4: Enriching methods with semantic descriptions...")
            await self.enricher.enrich_methods()

            state.current_stage = "vectorize"
            log.info("Step 4/4: Generating vector embeddings...")
            await self.vectorizer.vectorize_enriched_methods()

            duration = time.monotonic() - start
            state.last_run_time = datetime.now(timezone.utc)
            state.last_duration_seconds = duration

            log.info("=== Code Knowledge Ingestion Pipeline Completed ===")
            log.info(f"Duration: {duration:.1f} seconds")

        except Exception as e:
            state.last_error = f"{state.current_stage}: {e}"
            log.error(
                f"Ingestion pipeline failed at stage {state.current_stage}: {e}",
                exc_info=True,
            )

        finally:
            state.release()

    # ====================================================
    # STATUS
    # ====================================================

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    def status(self) -> Dict[str, Any]:
        """Snapshot of the run state. No side effects."""
        state = self.state
        return {
            "is_running": state.is_running,
            "current_stage": state.current_stage,
            "last_run_time": state.last_run_time.isoformat() if state.last_run_time else "Never",
            "last_duration_seconds": state.last_duration_seconds,
            "last_error": state.last_error,
            "scheduling_enabled": self.scheduling_enabled,
            "ast_endpoint": self.ast_endpoint,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ====================================================
    # PERIODIC SCHEDULING
    # ====================================================

    def start_scheduler(self) -> bool:
        """
        Start periodic runs on the current loop.

        Returns:
            False if scheduling is disabled, True once the loop task exists
        """
        if not self.scheduling_enabled:
            log.info("Scheduled ingestion disabled")
            return False

        if self._scheduler_task is None or self._scheduler_task.done():
            self._scheduler_task = asyncio.get_running_loop().create_task(self._schedule_loop())
            log.info(f"Scheduled ingestion every {self.schedule_interval_seconds:.0f}s")
        return True

    async def stop_scheduler(self) -> None:
        task = self._scheduler_task
        self._scheduler_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("Scheduled ingestion stopped")

    async def _schedule_loop(self) -> None:
        while True:
            await asyncio.sleep(self.schedule_interval_seconds)
            await self.run_pipeline()
