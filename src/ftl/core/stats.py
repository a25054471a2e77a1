from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

from .shape_checker import ContractionPlan


def _prod(values: Iterable[int]) -> int:
    result = 1
    for value in values:
        result *= int(max(1, value))
    return int(result)


def compute_contraction_stats(
    plan: ContractionPlan,
    operand_shapes: Sequence[Sequence[int]],
    operand_itemsizes: Sequence[int],
    result_itemsize: int,
) -> Dict[str, Any]:
    output_size = _prod(plan.result_shape.dim_sizes)
    contract_size = _prod(plan.reduced_sizes)

    if plan.reduced:
        flops = float(2 * output_size * contract_size)
        reductions = int(max(contract_size - 1, 0) * output_size)
    else:
        flops = float(output_size)
        reductions = 0

    bytes_in = 0
    for shape, itemsize in zip(operand_shapes, operand_itemsizes):
        bytes_in += _prod(shape) * int(itemsize)
    bytes_out = output_size * int(result_itemsize)

    return {
        "flops": flops,
        "bytes_in": int(bytes_in),
        "bytes_out": int(bytes_out),
        "bytes_total": int(bytes_in + bytes_out),
        "contracted": [str(label) for label in plan.reduced_labels],
        "output_indices": [str(label) for label in plan.result_labels],
        "reductions": reductions,
    }


def compute_elementwise_stats(
    dim_sizes: Sequence[int],
    operand_itemsizes: Sequence[int],
    result_itemsize: int,
) -> Dict[str, Any]:
    size = _prod(dim_sizes)
    bytes_in = sum(size * int(itemsize) for itemsize in operand_itemsizes)
    bytes_out = size * int(result_itemsize)
    return {
        "flops": float(size),
        "bytes_in": int(bytes_in),
        "bytes_out": int(bytes_out),
        "bytes_total": int(bytes_in + bytes_out),
        "contracted": [],
        "output_indices": [],
        "reductions": 0,
    }
