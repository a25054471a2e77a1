import numpy as np

from ftl import ExecutionConfig, FixedShape, Materializer, OperandModified, Tensor

X = Tensor.from_numpy(np.arange(12.0).reshape(3, 4))
W = Tensor.new(FixedShape(4, 2))
W.initialize(0.0, 1.0, seed=0)
bias = Tensor.full([3, 2], 0.5)
residual = Tensor.from_numpy(np.ones((2, 3)))

# Y = X W + bias - residual^T, built lazily and evaluated once
graph = X("n", "f") * W("f", "h") + bias - residual.T
print("graph shape:", graph.shape, "kind:", graph.shape.kind.value)

runner = Materializer(ExecutionConfig(strategy="vectorized"))
Y = runner.run(graph)
print(Y.numpy())
print(runner.explain(json=True)["summary"])

# Writing an operand invalidates graphs that were built over it
bias[0, 0] = 10.0
try:
    runner.run(graph)
except OperandModified as exc:
    print("rebuild required:", exc)
