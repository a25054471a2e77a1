from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from .core.evaluator import ExecutionConfig, Materializer
from .core.exceptions import FtlError
from .core.ops import add, contract, label, sub
from .core.tensor import Tensor


def _load_tensor(path: Path) -> Tensor:
    try:
        if str(path).lower().endswith(".npy"):
            return Tensor.from_numpy(np.load(path))
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SystemExit(f"Tensor file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Tensor file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or "shape" not in payload or "data" not in payload:
        raise SystemExit(f"Tensor file {path} must hold an object with 'shape' and 'data' keys")
    return Tensor.from_data(payload["shape"], payload["data"])


def _write_output(path: Path, tensor: Tensor) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if str(path).lower().endswith(".npy"):
        np.save(path, tensor.numpy())
    else:
        payload = {"shape": list(tensor.dim_sizes), "data": tensor.tolist()}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _parse_labels(text: str) -> List[str]:
    return [item.strip() for item in text.split(",") if item.strip()]


def _run(args: argparse.Namespace) -> None:
    left = _load_tensor(args.left_tensor)
    right = _load_tensor(args.right_tensor)
    try:
        materializer = Materializer(ExecutionConfig(strategy=args.strategy, workers=args.workers))
        if args.cmd == "contract":
            node = contract(label(left, _parse_labels(args.left)), label(right, _parse_labels(args.right)))
        elif args.cmd == "add":
            node = add(left, right)
        else:
            node = sub(left, right)
        result = materializer.run(node)
    except (FtlError, ValueError) as exc:
        raise SystemExit(f"{args.cmd} failed: {exc}") from exc

    if args.out is None:
        np.set_printoptions(suppress=True)
        print(f"# shape {tuple(result.dim_sizes)}")
        print(result.numpy())
    else:
        _write_output(args.out, result)
    if args.explain:
        print(materializer.explain())


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("left_tensor", type=Path, help="Left operand (.npy or .json)")
    parser.add_argument("right_tensor", type=Path, help="Right operand (.npy or .json)")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Optional output path (.npy/.json). If omitted, prints the result",
    )
    parser.add_argument(
        "--strategy",
        default="elementwise",
        choices=["elementwise", "vectorized"],
        help="Materialization strategy (default: elementwise)",
    )
    parser.add_argument("--workers", type=int, default=1, help="Worker threads for elementwise evaluation")
    parser.add_argument("--explain", action="store_true", help="Print the materializer run log")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ftl command line utilities")
    subparsers = parser.add_subparsers(dest="cmd")

    contract_parser = subparsers.add_parser("contract", help="Contract two tensors over shared labels")
    _add_common(contract_parser)
    contract_parser.add_argument("--left", required=True, help="Comma separated labels of the left operand")
    contract_parser.add_argument("--right", required=True, help="Comma separated labels of the right operand")

    add_parser = subparsers.add_parser("add", help="Elementwise sum of two tensors")
    _add_common(add_parser)
    sub_parser = subparsers.add_parser("sub", help="Elementwise difference of two tensors")
    _add_common(sub_parser)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.cmd in {"contract", "add", "sub"}:
        _run(args)
        return

    parser.print_help()


if __name__ == "__main__":  # pragma: no cover
    main(sys.argv[1:])
