from dataclasses import dataclass, field

from conv_module.errors import ConfigurationError

BORDER_MODES = ("valid", "same")
AXIS_ORDERS = ("channels_last", "channels_first")

# Keras 1 dim_ordering names
AXIS_ORDER_ALIASES = {"tf": "channels_last", "th": "channels_first"}


def _check_positive(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")


def normalize_stride(stride: int | tuple[int, int] | list[int]) -> tuple[int, int]:
    if isinstance(stride, int) and not isinstance(stride, bool):
        stride = (stride, stride)
    try:
        stride = tuple(stride)
    except TypeError:
        raise ConfigurationError(f"stride must be an int or a (rows, cols) pair, got {stride!r}") from None
    if len(stride) != 2:
        raise ConfigurationError(f"stride must be an int or a (rows, cols) pair, got {stride!r}")
    for value in stride:
        _check_positive("stride", value)
    return stride  # type: ignore[return-value]


@dataclass(frozen=True)
class LayerConfig:
    """
    Static configuration of a Convolution2D layer, validated on creation.
    """

    num_filters: int = 1
    kernel_rows: int = 3
    kernel_cols: int = 3
    border_mode: str = "valid"
    stride: tuple[int, int] = field(default=(1, 1))
    axis_order: str = "channels_last"
    use_bias: bool = True
    activation: str = "linear"

    def __post_init__(self) -> None:
        _check_positive("num_filters", self.num_filters)
        _check_positive("kernel_rows", self.kernel_rows)
        _check_positive("kernel_cols", self.kernel_cols)

        if self.border_mode not in BORDER_MODES:
            raise ConfigurationError(
                f"Invalid border_mode {self.border_mode!r}, expected one of {', '.join(BORDER_MODES)}"
            )

        axis_order = AXIS_ORDER_ALIASES.get(self.axis_order, self.axis_order)
        if axis_order not in AXIS_ORDERS:
            raise ConfigurationError(
                f"Invalid axis_order {self.axis_order!r}, expected one of {', '.join(AXIS_ORDERS)}"
            )

        if not isinstance(self.use_bias, bool):
            raise ConfigurationError(f"use_bias must be a bool, got {self.use_bias!r}")

        object.__setattr__(self, "axis_order", axis_order)
        object.__setattr__(self, "stride", normalize_stride(self.stride))

    @property
    def kernel_shape(self) -> tuple[int, int, int]:
        return (self.num_filters, self.kernel_rows, self.kernel_cols)

    @property
    def channels_first(self) -> bool:
        return self.axis_order == "channels_first"
