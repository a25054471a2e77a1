from __future__ import annotations

import itertools
import logging
import math
import string
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import OperandModified, ValueOverflow
from .index_mapper import mapper_for
from .ir import (
    Add,
    Contract,
    Leaf,
    Node,
    Permute,
    Sub,
    as_node,
    describe,
    infer_shape,
    iter_nodes,
    operand_refs,
    result_dtype,
)
from .shape_checker import format_labels
from .stats import compute_contraction_stats, compute_elementwise_stats
from .storage import Storage
from .tensor import Tensor

logger = logging.getLogger(__name__)

# Map labels to letters for numpy.einsum
EINSUM_LABELS = list(string.ascii_letters)

LinearFn = Callable[[int], Any]
CoordsFn = Callable[[Sequence[int]], Any]


def _json_ready(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (np.integer, np.floating)):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, dict):
        return {str(k): _json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_ready(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class ExecutionConfig:
    """
    Switches controlling how an expression graph is materialized.

    Key behaviors:
    * ``strategy`` is ``"elementwise"`` (evaluate the graph once per output
      offset) or ``"vectorized"`` (evaluate whole operands with NumPy).
    * ``workers`` > 1 spreads elementwise evaluation over a thread pool in
      blocks of ``block_size`` offsets; each block writes a disjoint slice of
      the result.
    * ``check_operands`` rejects graphs whose operand tensors were written to
      after the graph was built.
    """

    strategy: str = "elementwise"  # "elementwise" | "vectorized"
    workers: int = 1
    block_size: Optional[int] = None
    dtype: Optional[str] = None
    check_operands: bool = True
    explain_timings: bool = True

    def normalized(self) -> "ExecutionConfig":
        strategy = (self.strategy or "elementwise").lower()
        if strategy not in {"elementwise", "vectorized"}:
            raise ValueError(f"Unsupported materialization strategy: {self.strategy}")
        workers = int(self.workers)
        if workers < 1:
            raise ValueError("workers must be at least 1")
        block_size = self.block_size
        if block_size is not None:
            block_size = int(block_size)
            if block_size <= 0:
                raise ValueError("block_size must be positive when provided")
        dtype = self.dtype
        if dtype is not None:
            try:
                dtype = np.dtype(dtype).name
            except TypeError as exc:
                raise ValueError(f"Unsupported result dtype: {self.dtype}") from exc
        return replace(
            self,
            strategy=strategy,
            workers=workers,
            block_size=block_size,
            dtype=dtype,
            check_operands=bool(self.check_operands),
            explain_timings=bool(self.explain_timings),
        )


class Materializer:
    def __init__(self, config: Optional[ExecutionConfig] = None):
        self.config = (config or ExecutionConfig()).normalized()
        self.logs: List[Dict[str, Any]] = []

    # Public API ----------------------------------------------------------------
    def __call__(self, node: Any, *, config: Optional[ExecutionConfig] = None) -> Tensor:
        return self.run(node, config=config)

    def run(self, node: Any, *, config: Optional[ExecutionConfig] = None) -> Tensor:
        cfg = (config or self.config).normalized()
        self.config = cfg
        self.logs.clear()

        root = as_node(node)
        shape = infer_shape(root)
        if cfg.check_operands:
            _check_operands(root)
        dtype = np.dtype(cfg.dtype) if cfg.dtype else result_dtype(root)

        start = time.perf_counter()
        if cfg.strategy == "vectorized":
            storage = self._run_vectorized(root, dtype)
        else:
            storage = self._run_elementwise(root, shape.size, dtype, cfg)
        duration_ms = (time.perf_counter() - start) * 1000.0

        result = Tensor._from_storage(shape, storage)
        self._log_graph(root, dtype)
        self.logs.append(
            {
                "kind": "result",
                "result": {
                    "shape": list(shape.dim_sizes),
                    "kind": shape.kind.value,
                    "dtype": dtype.name,
                    "strategy": cfg.strategy,
                    "workers": cfg.workers,
                    "duration_ms": duration_ms if cfg.explain_timings else None,
                },
            }
        )
        logger.debug(
            "materialized %s into shape %s (%s, %.3fms)",
            describe(root),
            shape.dim_sizes,
            cfg.strategy,
            duration_ms,
        )
        return result

    def explain(self, *, json: bool = False):
        total_flops = 0.0
        total_bytes = 0.0
        node_count = 0
        total_time_ms: Optional[float] = None

        def _format_metric(value: Optional[float], unit: str) -> Optional[str]:
            if value is None:
                return None
            magnitude = float(value)
            if magnitude == 0:
                return f"{unit}=0"
            suffixes = [
                (1e12, "T"),
                (1e9, "G"),
                (1e6, "M"),
                (1e3, "K"),
            ]
            for threshold, label in suffixes:
                if magnitude >= threshold:
                    return f"{unit}={magnitude / threshold:.2f}{label}"
            return f"{unit}={magnitude:.2f}"

        lines: List[str] = []
        for entry in self.logs:
            kind = entry.get("kind")
            if kind == "node":
                info = entry["node"]
                details: List[str] = [f"shape={tuple(info['shape'])}"]
                contracted = info.get("contracted") or []
                if contracted:
                    details.append(f"reduced={','.join(contracted)}")
                flops = info.get("flops")
                bytes_total = info.get("bytes_total")
                flops_str = _format_metric(flops, "flops")
                bytes_str = _format_metric(bytes_total, "bytes")
                if flops_str:
                    details.append(flops_str)
                if bytes_str:
                    details.append(bytes_str)
                if flops is not None:
                    total_flops += float(flops)
                if bytes_total is not None:
                    total_bytes += float(bytes_total)
                node_count += 1
                lines.append(f"[node {info['index']:02d}] {info['op']} {' '.join(details)}")
            elif kind == "result":
                res = entry["result"]
                total_time_ms = res.get("duration_ms")
                lines.append(
                    f"[result] shape={tuple(res['shape'])} kind={res['kind']} dtype={res['dtype']} "
                    f"strategy={res['strategy']} workers={res['workers']}"
                )

        summary: Optional[Dict[str, Any]] = None
        if node_count:
            summary = {
                "nodes": node_count,
                "total_ms": total_time_ms,
                "total_flops": total_flops or None,
                "total_bytes": total_bytes or None,
            }
            summary_parts: List[Optional[str]] = [f"nodes={node_count}"]
            if total_time_ms is not None:
                summary_parts.insert(0, f"total={total_time_ms:.3f}ms")
            summary_parts.append(_format_metric(total_flops if total_flops else None, "flops"))
            summary_parts.append(_format_metric(total_bytes if total_bytes else None, "bytes"))
            lines.append(f"[perf] {' '.join(filter(None, summary_parts))}")

        if json:
            payload: Dict[str, Any] = {"logs": [_json_ready(entry) for entry in self.logs]}
            if summary is not None:
                payload["summary"] = summary
            return payload

        return "\n".join(lines)

    # Elementwise evaluation ----------------------------------------------------
    def _run_elementwise(
        self,
        root: Node,
        size: int,
        dtype: np.dtype,
        cfg: ExecutionConfig,
    ) -> Storage:
        value_at = _linear_evaluator(root)
        storage = Storage(size, dtype=dtype)
        block = cfg.block_size or max(1, math.ceil(size / cfg.workers))
        blocks = [(lo, min(lo + block, size)) for lo in range(0, size, block)]

        def _fill(bounds: Tuple[int, int]) -> None:
            lo, hi = bounds
            values = np.empty(hi - lo, dtype=object)
            for position, offset in enumerate(range(lo, hi)):
                values[position] = value_at(offset)
            storage.write_block(lo, _checked_cast(values, dtype))

        if cfg.workers == 1 or len(blocks) == 1:
            for bounds in blocks:
                _fill(bounds)
            return storage

        with ThreadPoolExecutor(max_workers=cfg.workers) as pool:
            # list() re-raises the first worker failure
            list(pool.map(_fill, blocks))
        return storage

    # Vectorized evaluation -----------------------------------------------------
    def _run_vectorized(self, root: Node, dtype: np.dtype) -> Storage:
        # Integer and boolean results are computed on Python ints so that
        # overflow is detected instead of wrapping.
        exact = dtype.kind in "biu"
        array = np.asarray(_evaluate_array(root, exact), dtype=object if exact else None)
        return Storage.wrap(_checked_cast(array.flatten(order="F"), dtype))

    # Logging -------------------------------------------------------------------
    def _log_graph(self, root: Node, dtype: np.dtype) -> None:
        for index, item in enumerate(n for n in iter_nodes(root) if not isinstance(n, Leaf)):
            if isinstance(item, Contract):
                meta = compute_contraction_stats(
                    item.plan,
                    [item.left.shape.dim_sizes, item.right.shape.dim_sizes],
                    [item.left.tensor.dtype.itemsize, item.right.tensor.dtype.itemsize],
                    dtype.itemsize,
                )
            elif isinstance(item, Permute):
                meta = compute_elementwise_stats(item.shape.dim_sizes, [dtype.itemsize], dtype.itemsize)
                meta["flops"] = 0.0
            else:
                meta = compute_elementwise_stats(
                    item.shape.dim_sizes, [dtype.itemsize, dtype.itemsize], dtype.itemsize
                )
            self.logs.append(
                {
                    "kind": "node",
                    "node": {
                        "index": index,
                        "op": describe(item),
                        "shape": list(item.shape.dim_sizes),
                        "flops": meta.get("flops"),
                        "bytes_in": meta.get("bytes_in"),
                        "bytes_out": meta.get("bytes_out"),
                        "bytes_total": meta.get("bytes_total"),
                        "contracted": meta.get("contracted", []),
                        "output_indices": meta.get("output_indices", []),
                        "reductions": meta.get("reductions"),
                    },
                }
            )


def _check_operands(root: Node) -> None:
    for tensor, version in operand_refs(root):
        if tensor.version != version:
            raise OperandModified(
                "An operand tensor was written to after the expression was built; "
                "rebuild the expression to read the new values",
                operand=tensor,
            )


def _checked_cast(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Cast evaluated values to ``dtype``, refusing integer results that do not fit."""
    if dtype.kind in "iu" and values.size:
        info = np.iinfo(dtype)
        for value in values.tolist():
            if isinstance(value, float) and not math.isfinite(value):
                raise ValueOverflow("Result value has no integer representation", dtype=dtype, value=value)
            if value < info.min or value > info.max:
                raise ValueOverflow("Result value is out of range for the result dtype", dtype=dtype, value=value)
    return values.astype(dtype)


def _linear_evaluator(node: Node) -> LinearFn:
    """Return ``f(offset)`` giving the value of ``node`` at a linear offset."""
    if isinstance(node, Leaf):
        return node.tensor.get_linear
    if isinstance(node, Add):
        left, right = _linear_evaluator(node.left), _linear_evaluator(node.right)
        return lambda offset: left(offset) + right(offset)
    if isinstance(node, Sub):
        left, right = _linear_evaluator(node.left), _linear_evaluator(node.right)
        return lambda offset: left(offset) - right(offset)
    mapper = mapper_for(node.shape)
    at_coords = _coords_evaluator(node)
    return lambda offset: at_coords(mapper.linear_to_coords(offset))


def _coords_evaluator(node: Node) -> CoordsFn:
    """Return ``f(coords)`` giving the value of ``node`` at a coordinate."""
    if isinstance(node, Leaf):
        return node.tensor.get
    if isinstance(node, Add):
        left, right = _coords_evaluator(node.left), _coords_evaluator(node.right)
        return lambda coords: left(coords) + right(coords)
    if isinstance(node, Sub):
        left, right = _coords_evaluator(node.left), _coords_evaluator(node.right)
        return lambda coords: left(coords) - right(coords)
    if isinstance(node, Contract):
        return _contraction_evaluator(node)
    if isinstance(node, Permute):
        return _permutation_evaluator(node)
    raise TypeError(f"Unknown expression node {type(node).__name__}")


def _contraction_evaluator(node: Contract) -> CoordsFn:
    plan = node.plan
    left, right = node.left.tensor, node.right.tensor
    split = len(plan.free_left)
    reduced_ranges = [range(size) for size in plan.reduced_sizes]

    def value_at(coords: Sequence[int]) -> Any:
        coords_a = [0] * left.rank
        coords_b = [0] * right.rank
        for pos, axis in enumerate(plan.free_left):
            coords_a[axis] = coords[pos]
        for pos, axis in enumerate(plan.free_right):
            coords_b[axis] = coords[split + pos]
        total = 0
        for values in itertools.product(*reduced_ranges):
            for (_, axis_a, axis_b), value in zip(plan.reduced, values):
                coords_a[axis_a] = value
                coords_b[axis_b] = value
            total += left.get(tuple(coords_a)) * right.get(tuple(coords_b))
        return total

    return value_at


def _permutation_evaluator(node: Permute) -> CoordsFn:
    inner = _coords_evaluator(node.operand)
    axes = node.axes

    def value_at(coords: Sequence[int]) -> Any:
        source = [0] * len(axes)
        for position, axis in enumerate(axes):
            source[axis] = coords[position]
        return inner(tuple(source))

    return value_at


def _evaluate_array(node: Node, exact: bool = False) -> np.ndarray:
    """Evaluate ``node`` as a NumPy array indexed like the result tensor.

    With ``exact`` the operands are lifted to object arrays of Python scalars,
    so integer arithmetic cannot wrap around.
    """
    if isinstance(node, Leaf):
        return _operand_array(node.tensor, exact)
    if isinstance(node, Add):
        return _evaluate_array(node.left, exact) + _evaluate_array(node.right, exact)
    if isinstance(node, Sub):
        return _evaluate_array(node.left, exact) - _evaluate_array(node.right, exact)
    if isinstance(node, Contract):
        equation = _einsum_equation(node)
        return np.einsum(
            equation,
            _operand_array(node.left.tensor, exact),
            _operand_array(node.right.tensor, exact),
        )
    if isinstance(node, Permute):
        return np.transpose(_evaluate_array(node.operand, exact), node.axes)
    raise TypeError(f"Unknown expression node {type(node).__name__}")


def _operand_array(tensor: Tensor, exact: bool) -> np.ndarray:
    array = tensor.numpy()
    return array.astype(object) if exact else array


def _einsum_equation(node: Contract) -> str:
    plan = node.plan
    mapping: Dict[Any, str] = {}
    for label in plan.left_labels + plan.right_labels:
        if label in mapping:
            continue
        if len(mapping) >= len(EINSUM_LABELS):
            raise ValueError(
                f"Vectorized contraction supports at most {len(EINSUM_LABELS)} distinct labels"
            )
        mapping[label] = EINSUM_LABELS[len(mapping)]

    def _letters(labels) -> str:
        return "".join(mapping[label] for label in labels)

    equation = f"{_letters(plan.left_labels)},{_letters(plan.right_labels)}->{_letters(plan.result_labels)}"
    logger.debug("contract %s lowered to einsum %s", format_labels(plan.left_labels), equation)
    return equation
