"""Core runtime modules for ftl."""

__all__ = [
    "evaluator",
    "exceptions",
    "index_mapper",
    "ir",
    "ops",
    "shape",
    "shape_checker",
    "stats",
    "storage",
    "tensor",
]
