import pytest

from ftl import ExecutionConfig


def test_execution_config_normalization_handles_strategy_workers_dtype():
    cfg = ExecutionConfig(strategy="VECTORIZED", workers="2", dtype="f4", check_operands=0).normalized()
    assert cfg.strategy == "vectorized"
    assert cfg.workers == 2
    assert cfg.dtype == "float32"
    assert cfg.check_operands is False


def test_execution_config_defaults():
    cfg = ExecutionConfig().normalized()
    assert cfg == ExecutionConfig()
    assert cfg.strategy == "elementwise"
    assert cfg.block_size is None


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"strategy": "gpu"}, "Unsupported materialization strategy"),
        ({"workers": 0}, "workers must be at least 1"),
        ({"block_size": 0}, "block_size must be positive"),
        ({"dtype": "not-a-dtype"}, "Unsupported result dtype"),
    ],
)
def test_execution_config_rejects_invalid_values(kwargs, message):
    with pytest.raises(ValueError, match=message):
        ExecutionConfig(**kwargs).normalized()


def test_execution_config_is_frozen():
    cfg = ExecutionConfig()
    with pytest.raises(AttributeError):
        cfg.workers = 3
