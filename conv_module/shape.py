"""
Output size and padding arithmetic, following TensorFlow's "VALID"/"SAME"
conventions (see tensorflow/core/framework/common_shape_fns.cc).
"""

from typing import NamedTuple

from conv_module.errors import ShapeMismatchError


class Geometry(NamedTuple):
    output_shape: tuple[int, int, int]
    # (top, bottom, left, right)
    padding: tuple[int, int, int, int]


def _same_padding(input_size: int, output_size: int, kernel_size: int, stride: int) -> tuple[int, int]:
    total = max(0, (output_size - 1) * stride + kernel_size - input_size)
    before = total // 2
    return before, total - before


def calc_output_shape(
    input_rows: int,
    input_cols: int,
    kernel_shape: tuple[int, int, int],
    stride: tuple[int, int],
    border_mode: str,
) -> Geometry:
    num_filters, kernel_rows, kernel_cols = kernel_shape
    stride_rows, stride_cols = stride

    if border_mode == "same":
        output_rows = (input_rows + stride_rows - 1) // stride_rows
        output_cols = (input_cols + stride_cols - 1) // stride_cols
        padding = (
            *_same_padding(input_rows, output_rows, kernel_rows, stride_rows),
            *_same_padding(input_cols, output_cols, kernel_cols, stride_cols),
        )
    else:
        output_rows = (input_rows - kernel_rows + stride_rows) // stride_rows
        output_cols = (input_cols - kernel_cols + stride_cols) // stride_cols
        padding = (0, 0, 0, 0)

    if output_rows < 1 or output_cols < 1:
        raise ShapeMismatchError(
            f"Kernel {kernel_rows}x{kernel_cols} does not fit input {input_rows}x{input_cols} "
            f"with border_mode={border_mode!r}"
        )

    return Geometry((output_rows, output_cols, num_filters), padding)  # type: ignore[arg-type]


class GeometryCache:
    """
    Keeps the geometry of the last input spatial size seen, recomputing it only
    when the size changes.
    """

    def __init__(self, kernel_shape: tuple[int, int, int], stride: tuple[int, int], border_mode: str) -> None:
        self.kernel_shape = kernel_shape
        self.stride = stride
        self.border_mode = border_mode
        self._key: tuple[int, int] | None = None
        self._geometry: Geometry | None = None

    @property
    def geometry(self) -> Geometry | None:
        return self._geometry

    def is_stale(self, input_rows: int, input_cols: int) -> bool:
        return self._key != (input_rows, input_cols)

    def get(self, input_rows: int, input_cols: int) -> Geometry:
        if self._geometry is None or self.is_stale(input_rows, input_cols):
            self._geometry = calc_output_shape(
                input_rows, input_cols, self.kernel_shape, self.stride, self.border_mode
            )
            self._key = (input_rows, input_cols)
        return self._geometry
