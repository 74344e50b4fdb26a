class ConvError(Exception):
    """Base class for every error raised by the convolution layer."""


class ConfigurationError(ConvError, ValueError):
    pass


class WeightShapeError(ConvError, ValueError):
    pass


class WeightsNotSetError(ConvError, RuntimeError):
    pass


class ShapeMismatchError(ConvError, ValueError):
    pass
