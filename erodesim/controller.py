"""Erosion controller: binds a heightmap, runs erosion, scores the result.

Lifecycle:
    controller = ErosionController(mesh_consumer=consumer)
    controller.bind(source)                       # allocate buffers once
    controller.start_erosion(ErosionBackend.CPU)  # returns immediately
    ...
    controller.stop_erosion()                     # cancel and join
    score = controller.calculate_score()
    controller.release()

State machine: IDLE -> RUNNING(CPU|GPU) -> IDLE. A CPU run executes on a
single background worker and is cancelled cooperatively at step
boundaries. A GPU run executes on the calling thread; another thread may
still cancel it with stop_erosion().
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from enum import Enum, auto

from erodesim.config import ensure_taichi
from erodesim.diagnostics import MaterialBudget, material_total
from erodesim.errors import (
    AlreadyBoundError,
    AlreadyRunningError,
    BackendUnavailableError,
    ErosionBackendError,
    NotBoundError,
)
from erodesim.fields.storage import GridStorage
from erodesim.interfaces import HeightGridSource, MeshConsumer, NullMeshConsumer
from erodesim.kernels import PipelineRegistry, get_registry
from erodesim.kernels.protocol import ErosionBackend, ErosionPipeline
from erodesim.params.schema import EngineConfig, ErosionParams, PreviewParams
from erodesim.scoring import roughness_score

logger = logging.getLogger(__name__)

# Poll interval while waiting for the mesh consumer to finish an upload
UPLOAD_POLL_SECONDS = 0.001


class RunStatus(Enum):
    """Outcome of the most recent run."""

    IDLE = auto()  # nothing has run since bind
    RUNNING = auto()
    COMPLETED = auto()  # reached n_steps
    CANCELLED = auto()  # stopped by stop_erosion()
    FAILED = auto()  # pipeline raised; see last_error


class ErosionController:
    """Owns the grid storage and drives erosion runs on either backend.

    Attributes:
        params: Erosion parameters, read at every step
        preview: Mesh preview toggles
        mesh_consumer: Notified when new terrain is ready
        budget: Material budget of the current or last run
        status: RunStatus of the current or last run
        last_error: Exception of the last failed run, or None
    """

    def __init__(
        self,
        params: ErosionParams | None = None,
        preview: PreviewParams | None = None,
        mesh_consumer: MeshConsumer | None = None,
        registry: PipelineRegistry | None = None,
    ):
        self.params = params or ErosionParams()
        self.preview = preview or PreviewParams()
        self.mesh_consumer = mesh_consumer or NullMeshConsumer()
        self._registry = registry or get_registry()

        self._storage: GridStorage | None = None
        self._eroding = threading.Event()
        self._lock = threading.Lock()
        # held from the eroding check until the run is launched
        self._start_lock = threading.Lock()
        self._step = 0
        self._backend: ErosionBackend | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._future: Future | None = None

        self.budget = MaterialBudget()
        self.status = RunStatus.IDLE
        self.last_error: BaseException | None = None

    @classmethod
    def from_config(
        cls, config: EngineConfig, mesh_consumer: MeshConsumer | None = None
    ) -> "ErosionController":
        """Create a controller from an EngineConfig."""
        return cls(params=config.erosion, preview=config.preview, mesh_consumer=mesh_consumer)

    # Run state

    @property
    def eroding(self) -> bool:
        """True while a run is active."""
        return self._eroding.is_set()

    @property
    def step(self) -> int:
        """Steps completed in the current or last run."""
        with self._lock:
            return self._step

    @property
    def backend(self) -> ErosionBackend | None:
        """Backend of the current or last run."""
        return self._backend

    @property
    def bound(self) -> bool:
        """Whether buffers are allocated."""
        return self._storage is not None

    @property
    def storage(self) -> GridStorage:
        """Grid storage of the bound heightmap."""
        if self._storage is None:
            raise NotBoundError("No heightmap bound; call bind() first")
        return self._storage

    @property
    def width(self) -> int:
        return self.storage.width

    @property
    def size(self) -> int:
        return self.storage.size

    # Lifecycle

    def bind(self, source: HeightGridSource, use_gpu: bool = True) -> None:
        """Allocate buffers for `source`.

        The source's height array becomes the erosion target and is
        modified in place by every run.

        Args:
            source: Heightmap source
            use_gpu: Also allocate device mirrors for the GPU backend
                (initializes Taichi if nothing else has)

        Raises:
            AlreadyBoundError: If buffers are still held from a previous bind
        """
        if self._storage is not None:
            raise AlreadyBoundError("Controller already bound; call release() first")
        if use_gpu:
            ensure_taichi()
        self._storage = GridStorage(source, use_gpu=use_gpu)
        self.status = RunStatus.IDLE
        self.last_error = None
        logger.info(
            "Bound %dx%d heightmap (max_height=%s, device=%s)",
            self._storage.width,
            self._storage.width,
            self._storage.max_height,
            self._storage.has_device,
        )

    def release(self) -> None:
        """Free all buffers. No-op when unbound.

        Raises:
            AlreadyRunningError: If a run is active
        """
        with self._start_lock:
            if self.eroding:
                raise AlreadyRunningError("Cannot release while erosion is running")
            self._join()
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
            if self._storage is None:
                return
            self._storage.release()
            self._storage = None
        logger.info("Released grid storage")

    def start_erosion(self, backend: ErosionBackend = ErosionBackend.CPU) -> None:
        """Start a run of params.n_steps steps.

        CPU runs in the background and returns immediately. GPU blocks
        until the run completes or is cancelled from another thread.

        Raises:
            NotBoundError: If no heightmap is bound
            AlreadyRunningError: If a run is already active
            BackendUnavailableError: GPU requested without device buffers
            ValidationError: If params are out of range
            ErosionBackendError: If a GPU run fails
        """
        with self._start_lock:
            storage = self.storage
            if self.eroding:
                raise AlreadyRunningError("Erosion already running; call stop_erosion() first")
            self.params.validate()
            if backend == ErosionBackend.GPU and not storage.has_device:
                raise BackendUnavailableError(
                    "GPU backend needs device buffers; bind with use_gpu=True"
                )
            self._join()

            pipeline = self._registry.get(backend, storage)
            with self._lock:
                self._step = 0
            self._backend = backend
            self.budget = MaterialBudget(initial_material=material_total(storage.host.height))
            self.status = RunStatus.RUNNING
            self.last_error = None
            self._eroding.set()
            logger.info(
                "Starting %s erosion (%d steps, hydraulic=%s, thermal=%s)",
                backend.name,
                self.params.n_steps,
                self.params.hydraulic_enabled,
                self.params.thermal_enabled,
            )

            if backend == ErosionBackend.CPU:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="erodesim-run"
                    )
                self._future = self._executor.submit(self._run_cpu, pipeline)
                return

        # GPU runs on the calling thread, outside the start lock
        self._run_gpu(pipeline)

    def stop_erosion(self) -> None:
        """Cancel the active run and wait for a background run to exit.

        Idempotent. After it returns no background task touches the buffers.
        """
        with self._start_lock:
            if self.eroding:
                logger.info("Stopping erosion at step %d", self.step)
            self._eroding.clear()
            self._join()

    def wait(self, timeout: float | None = None) -> RunStatus:
        """Block until a background run ends on its own.

        Raises:
            concurrent.futures.TimeoutError: If it is still running after `timeout`
        """
        future = self._future
        if future is not None:
            future.result(timeout=timeout)
        return self.status

    def calculate_score(self) -> float:
        """Roughness of the bound heightmap (see erodesim.scoring).

        Safe to call during a CPU run, but then reads a partly updated grid.

        Raises:
            NotBoundError: If no heightmap is bound
            DegenerateScoreError: If the heightmap is flat
        """
        return roughness_score(self.storage.host.height)

    # Run loops

    def _join(self) -> None:
        future = self._future
        if future is None:
            return
        # _run_cpu records failures instead of raising
        future.result()
        self._future = None

    def _advance(self) -> None:
        with self._lock:
            self._step += 1

    def _signal_step(self) -> None:
        if self.preview.show_erosion and not self.mesh_consumer.needs_upload():
            self.mesh_consumer.regenerate(include_water=self.preview.show_water)

    def _end_run(self, completed: bool) -> None:
        self.status = RunStatus.COMPLETED if completed else RunStatus.CANCELLED
        self._eroding.clear()
        logger.info(
            "%s erosion %s after %d steps",
            self._backend.name,
            "completed" if completed else "cancelled",
            self.step,
        )

    def _fail(self, exc: BaseException) -> None:
        self.last_error = exc
        self.status = RunStatus.FAILED
        self._eroding.clear()

    def _run_cpu(self, pipeline: ErosionPipeline) -> None:
        params = self.params
        try:
            with closing(pipeline):
                pipeline.begin(params)
                while self._eroding.is_set() and self.step < params.n_steps:
                    pipeline.step(self.step, params)
                    self._advance()
                    self._signal_step()
                self.budget.record(pipeline.finish())

            completed = self.step >= params.n_steps
            if completed and self._eroding.is_set():
                while self._eroding.is_set() and self.mesh_consumer.needs_upload():
                    time.sleep(UPLOAD_POLL_SECONDS)
                if self._eroding.is_set():
                    self.mesh_consumer.regenerate(include_water=True)
        except Exception as exc:
            logger.exception("CPU erosion failed at step %d", self.step)
            self._fail(exc)
            return
        self._end_run(completed)

    def _run_gpu(self, pipeline: ErosionPipeline) -> None:
        params = self.params
        try:
            with closing(pipeline):
                pipeline.begin(params)
                while self._eroding.is_set() and self.step < params.n_steps:
                    pipeline.step(self.step, params)
                    self._advance()
                self.budget.record(pipeline.finish())

            if self.mesh_consumer.needs_upload():
                logger.warning("Mesh consumer busy after GPU run; skipping regenerate")
            else:
                self.mesh_consumer.regenerate(include_water=True)
        except Exception as exc:
            logger.exception("GPU erosion failed at step %d", self.step)
            self._fail(exc)
            raise ErosionBackendError(f"GPU erosion failed at step {self.step}") from exc
        self._end_run(self.step >= params.n_steps)
