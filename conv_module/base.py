from abc import ABC, abstractmethod
from typing import NamedTuple

from torch import Tensor


class PreparedWeights(NamedTuple):
    matrix: Tensor
    bias: Tensor | None


class MatMulBackend(ABC):
    """
    GEMM strategy used by Convolution2D: result[p, f] = bias[f] + sum_k patches[p, k] * matrix[k, f].

    `prepare` runs once per weight assignment, `gemm` once per forward call. `gemm` takes and
    returns host float32 tensors.
    """

    name: str = "base"

    def prepare(self, weight_matrix: Tensor, bias: Tensor | None) -> PreparedWeights:
        return PreparedWeights(weight_matrix, bias)

    @abstractmethod
    def gemm(self, patches: Tensor, weights: PreparedWeights) -> Tensor: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
