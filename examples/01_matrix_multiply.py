from ftl import ExecutionConfig, Materializer, Tensor

# Data is listed with dimension 0 varying fastest: A's first column is 1, 2, 3
A = Tensor.from_data([3, 2], [1, 2, 3, 4, 5, 6])
B = Tensor.from_data([2, 3], [7, 8, 9, 10, 11, 12])

node = A("i", "j") * B("j", "k")
runner = Materializer(ExecutionConfig())
C = runner.run(node)

print("C shape:", C.dim_sizes)
print("C (linear order):", C.tolist())
print(C.numpy())
print(runner.explain())
