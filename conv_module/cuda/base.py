import logging

import torch
from torch import Tensor

from conv_module.base import MatMulBackend, PreparedWeights

logger = logging.getLogger(__name__)


class AcceleratedGemm(MatMulBackend):
    name = "accelerated"

    def __init__(self, device: torch.device | str | None = None) -> None:
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)
        if self.device.type == "cuda" and not torch.cuda.is_available():
            raise RuntimeError("CUDA device requested but CUDA is not available")
        logger.debug("Accelerated GEMM running on %s", self.device)

    def prepare(self, weight_matrix: Tensor, bias: Tensor | None) -> PreparedWeights:
        matrix = weight_matrix.detach().to(device=self.device, dtype=torch.float32, copy=True).contiguous()
        if bias is None:
            bias = torch.zeros(matrix.shape[1], dtype=torch.float32, device=self.device)
        else:
            bias = bias.detach().to(device=self.device, dtype=torch.float32, copy=True)
        return PreparedWeights(matrix, bias)

    def gemm(self, patches: Tensor, weights: PreparedWeights) -> Tensor:
        patches = patches.to(device=self.device, dtype=torch.float32, non_blocking=True)
        result = torch.addmm(weights.bias, patches, weights.matrix)
        # .cpu() synchronizes with the device
        return result.cpu()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(device={str(self.device)!r})"
