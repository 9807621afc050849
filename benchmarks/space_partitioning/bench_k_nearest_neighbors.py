"""Benchmarks for k-d tree construction and k-nearest-neighbor search.

Builds trees over uniformly distributed points, times construction and
search separately, and validates sampled searches against the exhaustive
scan. Queries are served through ``SpatialIndexHandle``, which keeps the
host views of the published tree between calls.

Run ``python bench_k_nearest_neighbors.py --targets`` to check the serving
targets at 10,000,000 points: p50 and p99 latency under 1 ms and at least
1000 queries per second for k = 10.
"""

from __future__ import annotations

import sys
import time

import numpy as np
import torch

from torchknn.point_source import uniform_points
from torchknn.space_partitioning import (
    SpatialIndexHandle,
    exhaustive_k_nearest_neighbors,
    kd_tree,
)

TARGET_POINTS = 10_000_000
TARGET_LATENCY = 1e-3
TARGET_QUERIES_PER_SECOND = 1000.0


def milliseconds(seconds: float) -> str:
    return f"{seconds * 1e3:8.3f}ms"


def query_latencies(
    handle: SpatialIndexHandle,
    queries: torch.Tensor,
    k: int,
    warmup: int,
) -> tuple[list[float], float]:
    """Time single-query searches one call at a time.

    Returns
    -------
    latencies : list of float
        Seconds spent in each timed call.
    elapsed : float
        Wall time for all timed calls, used for throughput.
    """
    for query in queries[:warmup]:
        handle.k_nearest_neighbors(query, k)

    latencies = []
    start = time.perf_counter()
    for query in queries[warmup:]:
        begin = time.perf_counter()
        handle.k_nearest_neighbors(query, k)
        latencies.append(time.perf_counter() - begin)
    return latencies, time.perf_counter() - start


class BenchKNearestNeighbors:
    """Benchmarks for k-d tree build and search."""

    def __init__(self, warmup: int = 20, queries: int = 500, seed: int = 0):
        """Initialize benchmark runner.

        Parameters
        ----------
        warmup : int, optional
            Untimed queries issued before timing. Default is 20.
        queries : int, optional
            Timed single-query calls per measurement. Default is 500.
        seed : int, optional
            Seed for the point and query generators. Default is 0.
        """
        self.warmup = warmup
        self.queries = queries
        self.seed = seed

    def _points(self, n: int) -> torch.Tensor:
        generator = torch.Generator().manual_seed(self.seed)
        return uniform_points(
            n, decimals=2, dtype=torch.float64, generator=generator
        )

    def _queries(self, count: int) -> torch.Tensor:
        generator = torch.Generator().manual_seed(self.seed + 1)
        return uniform_points(count, dtype=torch.float64, generator=generator)

    def bench_build(self, n: int = 100_000) -> tuple[torch.Tensor, object]:
        """Build a tree and report construction time.

        Parameters
        ----------
        n : int, optional
            Number of points. Default is 100000.

        Returns
        -------
        tuple
            The points and the built tree.
        """
        points = self._points(n)
        start = time.perf_counter()
        tree = kd_tree(points)
        elapsed = time.perf_counter() - start
        print(f"  build  n={n:>11,}: {elapsed:10.3f}s")
        return points, tree

    def bench_search(
        self,
        n: int = 100_000,
        k: int = 10,
        *,
        built: tuple[torch.Tensor, object] | None = None,
        check_targets: bool = False,
    ) -> bool:
        """Measure single-query latency and throughput.

        Parameters
        ----------
        n : int, optional
            Number of points. Default is 100000.
        k : int, optional
            Neighbors per query. Default is 10.
        built : tuple, optional
            Points and tree from :meth:`bench_build`, to avoid rebuilding.
        check_targets : bool, optional
            Print whether the latency and throughput targets are met.

        Returns
        -------
        bool
            Whether the targets are met and sampled results match the
            exhaustive scan.
        """
        points, tree = built if built is not None else self.bench_build(n)
        handle = SpatialIndexHandle(tree)
        queries = self._queries(self.queries + self.warmup)

        latencies, elapsed = query_latencies(
            handle, queries, k, self.warmup
        )
        p50 = float(np.percentile(latencies, 50))
        p99 = float(np.percentile(latencies, 99))
        qps = len(latencies) / elapsed
        print(
            f"  search n={n:>11,} k={k:>3}: p50 {milliseconds(p50)}  "
            f"p99 {milliseconds(p99)}  {qps:10,.0f} queries/s"
        )

        correct = self._validate(points, handle, queries[:10], k)
        if not check_targets:
            return correct

        met = (
            p50 < TARGET_LATENCY
            and p99 < TARGET_LATENCY
            and qps >= TARGET_QUERIES_PER_SECOND
        )
        print(
            f"  targets (p50, p99 < {milliseconds(TARGET_LATENCY).strip()}, "
            f">= {TARGET_QUERIES_PER_SECOND:,.0f} queries/s): "
            f"{'PASS' if met else 'FAIL'}"
        )
        return met and correct

    def bench_far_query(self, n: int = 100_000, k: int = 10) -> None:
        """Measure a query far outside the data.

        Parameters
        ----------
        n : int, optional
            Number of points. Default is 100000.
        k : int, optional
            Neighbors per query. Default is 10.
        """
        points, tree = self.bench_build(n)
        handle = SpatialIndexHandle(tree)
        queries = torch.tensor([[1e9, 1e9, 1e9]], dtype=torch.float64)
        queries = queries.expand(self.queries + self.warmup, 3)

        latencies, _ = query_latencies(handle, queries, k, self.warmup)
        print(
            f"  far query n={n:>8,} k={k:>3}: "
            f"p50 {milliseconds(float(np.percentile(latencies, 50)))}  "
            f"p99 {milliseconds(float(np.percentile(latencies, 99)))}"
        )
        self._validate(points, handle, queries[:1], k)

    def _validate(self, points, handle, queries, k) -> bool:
        """Compare sampled results with the exhaustive scan."""
        expected = exhaustive_k_nearest_neighbors(points, queries, k)
        actual = handle.k_nearest_neighbors(queries, k)
        correct = torch.equal(actual.indices, expected.indices)
        print(f"  exhaustive agreement: {'PASS' if correct else 'FAIL'}")
        return correct

    def run_all(self) -> None:
        """Run all k-nearest-neighbor benchmarks."""
        print("=" * 60)
        print("K-NEAREST-NEIGHBOR BENCHMARKS")
        print("=" * 60)

        print("\n--- Build and search ---")
        self.bench_search()

        print("\n--- Far query ---")
        self.bench_far_query()

    def run_scaling(self) -> None:
        """Run scaling benchmarks with varying parameters."""
        print("=" * 60)
        print("SCALING BENCHMARKS")
        print("=" * 60)

        print("\n--- Point Count Scaling ---")
        for n in [1_000, 10_000, 100_000, 1_000_000]:
            self.bench_search(n=n)

        print("\n--- Neighbor Count Scaling ---")
        built = self.bench_build(100_000)
        for k in [1, 10, 100]:
            self.bench_search(n=100_000, k=k, built=built)

    def run_targets(self) -> bool:
        """Check the serving targets at full scale."""
        print("=" * 60)
        print(f"SERVING TARGETS ({TARGET_POINTS:,} POINTS)")
        print("=" * 60)
        return self.bench_search(n=TARGET_POINTS, check_targets=True)


if __name__ == "__main__":
    bench = BenchKNearestNeighbors()
    if "--targets" in sys.argv[1:]:
        sys.exit(0 if bench.run_targets() else 1)
    bench.run_all()
    print("\n")
    bench.run_scaling()
