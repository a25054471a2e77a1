#!/usr/bin/env python3
"""
Contraction benchmark for the ftl materializer.

Times a batched matrix contraction under the elementwise strategy (single and
multi-threaded) and the vectorized NumPy strategy, reporting throughput in
multiply-adds per second.
"""

from __future__ import annotations

import argparse
import math
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

import numpy as np

from ftl import Contract, ExecutionConfig, Materializer, Tensor


@dataclass
class BenchmarkResult:
    strategy: str
    workers: int
    min_s: float
    mean_s: float
    iterations: int
    macs_per_s: Optional[float]


def build_expression(*, rows: int, inner: int, cols: int, batch: int, seed: int) -> Contract:
    rng = np.random.default_rng(seed)
    left = Tensor.from_numpy(rng.normal(size=(rows, inner)))
    right = Tensor.from_numpy(rng.normal(size=(inner, cols, batch)))
    return left("i", "j") * right("j", "k", "b")


def bench(fn: Callable[[], Any], *, iterations: int, warmup: int) -> Iterable[float]:
    timings = []
    for step in range(iterations + warmup):
        start = time.perf_counter()
        fn()
        elapsed = time.perf_counter() - start
        if step >= warmup:
            timings.append(elapsed)
    return timings


def run_strategy(
    node: Contract,
    *,
    strategy: str,
    workers: int,
    iterations: int,
    warmup: int,
) -> BenchmarkResult:
    runner = Materializer(ExecutionConfig(strategy=strategy, workers=workers, explain_timings=False))

    def invoke():
        return runner.run(node)

    timings = list(bench(invoke, iterations=iterations, warmup=warmup))
    min_s = min(timings)
    mean_s = sum(timings) / len(timings)
    macs = node.size * node.plan.reduction_size
    return BenchmarkResult(
        strategy=strategy,
        workers=workers,
        min_s=min_s,
        mean_s=mean_s,
        iterations=iterations,
        macs_per_s=macs / min_s if min_s > 0 else None,
    )


def format_results(results: Iterable[BenchmarkResult]) -> str:
    header = f"{'strategy':<12} {'workers':>8} {'min (ms)':>12} {'mean (ms)':>12} {'iters':>8} {'MAC/s':>14}"
    rows = [header]
    for result in results:
        min_ms = result.min_s * 1e3
        mean_ms = result.mean_s * 1e3
        macs_per_s = result.macs_per_s or math.nan
        rows.append(
            f"{result.strategy:<12} {result.workers:8d} {min_ms:12.3f} {mean_ms:12.3f} {result.iterations:8d} {macs_per_s:14.3e}"
        )
    return "\n".join(rows)


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark ftl contraction strategies.")
    parser.add_argument("--rows", type=int, default=16, help="Free rows of the left operand (default: 16).")
    parser.add_argument("--inner", type=int, default=16, help="Size of the reduced label (default: 16).")
    parser.add_argument("--cols", type=int, default=16, help="Free columns of the right operand (default: 16).")
    parser.add_argument("--batch", type=int, default=4, help="Batch axis of the right operand (default: 4).")
    parser.add_argument(
        "--workers", type=int, default=4, help="Threads for the parallel elementwise run (default: 4)."
    )
    parser.add_argument("--seed", type=int, default=2024, help="Random seed for inputs (default: 2024).")
    parser.add_argument("--iterations", type=int, default=5, help="Timed iterations per strategy (default: 5).")
    parser.add_argument("--warmup", type=int, default=1, help="Warmup iterations to discard (default: 1).")
    return parser.parse_args(argv)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    node = build_expression(rows=args.rows, inner=args.inner, cols=args.cols, batch=args.batch, seed=args.seed)

    plans = [("elementwise", 1), ("elementwise", args.workers), ("vectorized", 1)]
    results: List[BenchmarkResult] = []
    for strategy, workers in plans:
        try:
            results.append(
                run_strategy(
                    node,
                    strategy=strategy,
                    workers=workers,
                    iterations=args.iterations,
                    warmup=args.warmup,
                )
            )
        except ValueError as exc:
            print(f"[skip] {strategy}/{workers}: {exc}", file=sys.stderr)

    if not results:
        print("No strategies were benchmarked.", file=sys.stderr)
        return 1

    print(format_results(results))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
