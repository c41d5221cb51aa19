import argparse

from benchmarks.scaling import ScalingBenchmark
from benchmarks.throughput import ThroughputBenchmark

# Registry of available benchmarks
BENCHMARKS = {
    "throughput": ThroughputBenchmark,
    "scaling": ScalingBenchmark,
}


def main():
    parser = argparse.ArgumentParser(description="erodesim benchmark harness")
    parser.add_argument(
        "benchmark",
        nargs="?",
        choices=list(BENCHMARKS.keys()) + ["all"],
        default="all",
        help="Benchmark to run (default: all)",
    )
    parser.add_argument(
        "--backend",
        choices=["cuda", "vulkan", "metal", "cpu"],
        default=None,
        help="Taichi arch for the GPU pipeline (default: auto-detect)",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable Taichi kernel profiler",
    )

    args = parser.parse_args()

    if args.benchmark == "all":
        to_run = list(BENCHMARKS.values())
    else:
        to_run = [BENCHMARKS[args.benchmark]]

    for bench_cls in to_run:
        print(f"\nRunning {bench_cls.__name__}...")
        bench_cls(profile=args.profile, backend=args.backend).run()


if __name__ == "__main__":
    main()
