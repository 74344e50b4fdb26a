import torch
from torch import Tensor


def pad_input(x: Tensor, padding: tuple[int, int, int, int]) -> Tensor:
    """
    Zero-pad a [rows, cols, channels] feature map. The input is left untouched;
    when no padding is needed it is returned as-is.
    """
    top, bottom, left, right = padding
    if not any(padding):
        return x

    input_rows, input_cols, input_channels = x.shape
    padded = torch.zeros(
        (input_rows + top + bottom, input_cols + left + right, input_channels),
        dtype=x.dtype,
        device=x.device,
    )
    padded[top : top + input_rows, left : left + input_cols, :] = x
    return padded
