import time
from dataclasses import dataclass

from benchmarks.harness import Benchmark
from erodesim.fields.storage import GridStorage
from erodesim.initialization import noise_grid
from erodesim.kernels.cpu import CpuErosionPipeline
from erodesim.params import ErosionParams


@dataclass
class ScalingMetrics:
    workers: int
    width: int
    steps: int
    wall_time_s: float

    @property
    def steps_per_second(self) -> float:
        return self.steps / self.wall_time_s


class ScalingBenchmark(Benchmark):
    """CPU pipeline speed-up as the thread pool grows."""

    width = 1024
    steps = 20
    workers = (1, 2, 4, 8, 16)

    def run(self) -> list[ScalingMetrics]:
        results = []
        self.print_header(f"CPU SCALING ({self.width}x{self.width})")

        for n in self.workers:
            results.append(self._run_single(n))

        self._print_report(results)
        self.teardown()
        return results

    def _run_single(self, workers: int) -> ScalingMetrics:
        print(f"\n{workers} worker(s)...", end=" ", flush=True)
        params = ErosionParams(n_steps=self.steps)
        storage = GridStorage(noise_grid(self.width, amplitude=50.0), use_gpu=False)
        pipeline = CpuErosionPipeline(storage, max_workers=workers)

        pipeline.begin(params)
        start_time = time.perf_counter()
        for step in range(self.steps):
            pipeline.step(step, params)
        end_time = time.perf_counter()
        pipeline.finish()
        print("Done.")

        return ScalingMetrics(
            workers=workers,
            width=self.width,
            steps=self.steps,
            wall_time_s=end_time - start_time,
        )

    def _print_report(self, results: list[ScalingMetrics]):
        self.print_header("RESULTS SUMMARY")
        base = results[0].steps_per_second if results else 1.0
        print(f"{'Workers':<10} {'Time (s)':<12} {'Steps/s':<12} {'Speed-up':<10}")
        print("-" * 80)
        for r in results:
            print(
                f"{r.workers:<10} "
                f"{r.wall_time_s:>6.2f}      "
                f"{r.steps_per_second:>8.2f}    "
                f"{r.steps_per_second / base:>6.2f}x"
            )
        self.print_footer()
