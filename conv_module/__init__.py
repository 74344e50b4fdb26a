from .base import MatMulBackend, PreparedWeights
from .config import LayerConfig
from .cpu import ReferenceGemm
from .cuda import AcceleratedGemm
from .errors import ConfigurationError, ConvError, ShapeMismatchError, WeightShapeError, WeightsNotSetError
from .layer import Convolution2D

__all__ = [
    "AcceleratedGemm",
    "ConfigurationError",
    "ConvError",
    "Convolution2D",
    "LayerConfig",
    "MatMulBackend",
    "PreparedWeights",
    "ReferenceGemm",
    "ShapeMismatchError",
    "WeightShapeError",
    "WeightsNotSetError",
]
