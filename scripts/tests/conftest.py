from collections.abc import Callable

import pytest
import torch
import torch.nn.functional as F
from torch import Tensor


@pytest.fixture
def device() -> torch.device:
    if not torch.cuda.is_available():
        pytest.skip("CUDA not available")
    return torch.device("cuda")


@pytest.fixture
def direct_conv2d() -> Callable[..., Tensor]:
    """
    Brute-force convolution straight from the definition, on a [rows, cols, channels]
    input and a [kernel_rows, kernel_cols, channels, filters] kernel.
    """

    def conv(
        x: Tensor,
        weight: Tensor,
        bias: Tensor | None,
        stride: tuple[int, int],
        padding: tuple[int, int, int, int] = (0, 0, 0, 0),
    ) -> Tensor:
        top, bottom, left, right = padding
        x = F.pad(x.permute(2, 0, 1), (left, right, top, bottom)).permute(1, 2, 0).double()
        weight = weight.double()
        kernel_rows, kernel_cols, channels, filters = weight.shape
        output_rows = (x.shape[0] - kernel_rows) // stride[0] + 1
        output_cols = (x.shape[1] - kernel_cols) // stride[1] + 1

        output = torch.zeros(output_rows, output_cols, filters, dtype=torch.float64)
        for i in range(output_rows):
            for j in range(output_cols):
                for f in range(filters):
                    total = 0.0 if bias is None else float(bias[f])
                    for r in range(kernel_rows):
                        for c in range(kernel_cols):
                            for ch in range(channels):
                                total += float(x[i * stride[0] + r, j * stride[1] + c, ch]) * float(
                                    weight[r, c, ch, f]
                                )
                    output[i, j, f] = total
        return output.float()

    return conv


@pytest.fixture
def torch_conv2d() -> Callable[..., Tensor]:
    """
    torch.nn.functional.conv2d on a [rows, cols, channels] input with explicit (top, bottom, left, right) padding.
    """

    def conv(
        x: Tensor,
        weight: Tensor,
        bias: Tensor | None,
        stride: tuple[int, int],
        padding: tuple[int, int, int, int] = (0, 0, 0, 0),
    ) -> Tensor:
        top, bottom, left, right = padding
        x = F.pad(x.permute(2, 0, 1).unsqueeze(0), (left, right, top, bottom))
        output = F.conv2d(x, weight.permute(3, 2, 0, 1), bias, stride=stride)
        return output[0].permute(1, 2, 0)

    return conv
