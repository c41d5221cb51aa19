import gc
import time
from dataclasses import dataclass

import taichi as ti

from benchmarks.harness import Benchmark
from erodesim.fields.storage import GridStorage
from erodesim.initialization import noise_grid
from erodesim.kernels import ErosionBackend, get_registry
from erodesim.params import ErosionParams


@dataclass
class ThroughputMetrics:
    backend: str
    width: int
    steps: int
    wall_time_s: float

    @property
    def n_cells(self) -> int:
        return self.width * self.width

    @property
    def steps_per_second(self) -> float:
        return self.steps / self.wall_time_s

    @property
    def megacells_per_second(self) -> float:
        return self.n_cells * self.steps / self.wall_time_s / 1e6


class ThroughputBenchmark(Benchmark):
    """Steps per second of each backend across grid sizes."""

    sizes = (256, 512, 1024, 2048)
    steps = 50
    warmup_steps = 5

    def run(self) -> list[ThroughputMetrics]:
        results = []
        self.print_header("EROSION THROUGHPUT")

        for width in self.sizes:
            for backend in (ErosionBackend.CPU, ErosionBackend.GPU):
                results.append(self._run_single(backend, width))

        self._print_report(results)
        self.teardown()
        return results

    def _run_single(self, backend: ErosionBackend, width: int) -> ThroughputMetrics:
        print(f"\n{backend.name} {width}x{width} ({width**2/1e6:.2f} M cells)...")
        gc.collect()

        params = ErosionParams(n_steps=self.steps, rain_frequency=10)
        storage = GridStorage(noise_grid(width, amplitude=50.0), use_gpu=backend == ErosionBackend.GPU)
        pipeline = get_registry().get(backend, storage)

        # Warmup (JIT compile, thread pool start)
        print("  Warming up...", end=" ", flush=True)
        pipeline.begin(params)
        for step in range(self.warmup_steps):
            pipeline.step(step, params)
        ti.sync()
        if self.profile:
            ti.profiler.clear_kernel_profiler_info()
        print("Done.")

        print(f"  Running {self.steps} steps...", end=" ", flush=True)
        start_time = time.perf_counter()
        for step in range(self.steps):
            pipeline.step(step, params)
        ti.sync()
        end_time = time.perf_counter()
        pipeline.finish()
        storage.release()
        print("Done.")

        return ThroughputMetrics(
            backend=backend.name,
            width=width,
            steps=self.steps,
            wall_time_s=end_time - start_time,
        )

    def _print_report(self, results: list[ThroughputMetrics]):
        self.print_header("RESULTS SUMMARY")
        print(f"{'Backend':<10} {'Grid':<10} {'Cells':<12} {'Time (s)':<12} {'Steps/s':<14} {'Throughput (MC/s)':<18}")
        print("-" * 80)

        for r in results:
            print(
                f"{r.backend:<10} "
                f"{r.width:<10} "
                f"{r.n_cells/1e6:>6.2f}M     "
                f"{r.wall_time_s:>6.2f}      "
                f"{r.steps_per_second:>8.1f}      "
                f"{r.megacells_per_second:>10.2f}"
            )
        self.print_footer()
