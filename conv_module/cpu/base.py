import torch
from torch import Tensor

from conv_module.base import MatMulBackend, PreparedWeights
from conv_module.errors import ShapeMismatchError


class ReferenceGemm(MatMulBackend):
    """
    Host GEMM accumulated in float64, so results do not depend on the BLAS
    blocking or thread count.
    """

    name = "reference"

    def prepare(self, weight_matrix: Tensor, bias: Tensor | None) -> PreparedWeights:
        matrix = weight_matrix.detach().to(device="cpu", dtype=torch.float64, copy=True)
        if bias is None:
            bias = torch.zeros(matrix.shape[1], dtype=torch.float64)
        else:
            bias = bias.detach().to(device="cpu", dtype=torch.float64, copy=True)
        return PreparedWeights(matrix, bias)

    def gemm(self, patches: Tensor, weights: PreparedWeights) -> Tensor:
        patches = patches.to(device="cpu", dtype=torch.float64)
        if patches.shape[1] != weights.matrix.shape[0]:
            raise ShapeMismatchError(
                f"Patch length {patches.shape[1]} does not match weight matrix rows {weights.matrix.shape[0]}"
            )
        result = torch.addmm(weights.bias, patches, weights.matrix)
        return result.to(torch.float32)
