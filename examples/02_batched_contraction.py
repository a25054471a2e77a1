import numpy as np

from ftl import ExecutionConfig, Materializer, Tensor

rng = np.random.default_rng(7)

# One weight matrix applied to a batch of matrices stacked along the last axis
W = Tensor.from_numpy(rng.normal(size=(4, 6)))
batch = Tensor.new([6, 5, 8])
batch.initialize(-1.0, 1.0, seed=7)

node = W("o", "d") * batch("d", "t", "b")
for strategy in ("elementwise", "vectorized"):
    runner = Materializer(ExecutionConfig(strategy=strategy, workers=4 if strategy == "elementwise" else 1))
    out = runner.run(node)
    print(f"{strategy}: shape={out.dim_sizes}")
    print(runner.explain())

expected = np.einsum("od,dtb->otb", W.numpy(), batch.numpy())
print("max abs error vs numpy:", float(np.abs(out.numpy() - expected).max()))
