"""
Base benchmark harness for erodesim.
"""
import abc
from typing import Any

import taichi as ti

from erodesim.config import init_taichi, initialized_backend


class Benchmark(abc.ABC):
    """Abstract base class for all benchmarks."""

    def __init__(self, profile: bool = False, backend: str | None = None):
        self.profile = profile
        self.backend = backend
        self.init_taichi()

    def init_taichi(self):
        """Initialize Taichi on the requested (or auto-detected) arch, once per process."""
        if initialized_backend() is not None:
            return
        print(f"Initializing Taichi (backend: {self.backend or 'auto'}, profile: {self.profile})...")
        init_taichi(backend=self.backend, debug=False, kernel_profiler=self.profile)

    @abc.abstractmethod
    def run(self) -> Any:
        """Run the benchmark logic. Returns results."""
        pass

    def teardown(self):
        """Print and reset the kernel profiler, if enabled."""
        if self.profile:
            print("\nProfiler Output:")
            ti.profiler.print_kernel_profiler_info()
            ti.profiler.clear_kernel_profiler_info()

    def print_header(self, title: str):
        print("\n" + "=" * 80)
        print(f"{title:^80}")
        print("=" * 80)

    def print_footer(self):
        print("=" * 80)
