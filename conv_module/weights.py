import enum
import logging

import torch
from torch import Tensor

from conv_module.base import MatMulBackend, PreparedWeights
from conv_module.errors import WeightsNotSetError

logger = logging.getLogger(__name__)


def to_canonical_kernel(weight: Tensor) -> Tensor:
    """
    [num_filters, input_channels, kernel_rows, kernel_cols] -> [kernel_rows, kernel_cols, input_channels, num_filters]
    """
    return weight.permute(2, 3, 1, 0).clone(memory_format=torch.contiguous_format)


def w2row(weight: Tensor) -> Tensor:
    """
    Flatten a canonical [kernel_rows, kernel_cols, input_channels, num_filters] kernel
    into a [kernel_rows * kernel_cols * input_channels, num_filters] matrix. Column f holds
    filter f flattened in the same (row, col, channel) order `im2col` uses for patches.
    """
    kernel_rows, kernel_cols, input_channels, num_filters = weight.shape
    return weight.reshape(kernel_rows * kernel_cols * input_channels, num_filters).clone()


class CacheState(enum.Enum):
    WEIGHTS_UNSET = "weights_unset"
    CACHE_VALID = "cache_valid"
    CACHE_STALE = "cache_stale"


class WeightCache:
    """
    Holds the canonical kernel together with its reshaped weight matrix and the
    backend's prepared operands.

    States move WEIGHTS_UNSET -> CACHE_STALE on `assign` and CACHE_STALE -> CACHE_VALID
    on `refresh`. Reading through `prepared` refreshes a stale cache first.
    """

    def __init__(self, backend: MatMulBackend) -> None:
        self.backend = backend
        self.state = CacheState.WEIGHTS_UNSET
        self._kernel: Tensor | None = None
        self._bias: Tensor | None = None
        self._matrix: Tensor | None = None
        self._prepared: PreparedWeights | None = None

    @property
    def kernel(self) -> Tensor | None:
        return self._kernel

    @property
    def input_channels(self) -> int:
        if self._kernel is None:
            raise WeightsNotSetError("Weights have not been set")
        return self._kernel.shape[2]

    def assign(self, kernel: Tensor, bias: Tensor | None) -> None:
        self._kernel = kernel
        self._bias = bias
        self._matrix = None
        self._prepared = None
        self.state = CacheState.CACHE_STALE

    def refresh(self) -> None:
        if self._kernel is None:
            raise WeightsNotSetError("Weights have not been set")
        self._matrix = w2row(self._kernel)
        self._prepared = self.backend.prepare(self._matrix, self._bias)
        self.state = CacheState.CACHE_VALID
        logger.debug("Weight matrix recomputed with shape %s", tuple(self._matrix.shape))

    def matrix(self) -> Tensor:
        if self.state is CacheState.WEIGHTS_UNSET:
            raise WeightsNotSetError("Weights have not been set")
        if self.state is CacheState.CACHE_STALE:
            self.refresh()
        return self._matrix  # type: ignore[return-value]

    def prepared(self) -> PreparedWeights:
        if self.state is not CacheState.CACHE_VALID:
            self.matrix()
        return self._prepared  # type: ignore[return-value]
