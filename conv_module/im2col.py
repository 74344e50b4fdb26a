from torch import Tensor


def im2col(
    x: Tensor,
    kernel_rows: int,
    kernel_cols: int,
    stride: tuple[int, int],
    output_size: tuple[int, int],
) -> Tensor:
    """
    Convert a (padded) [rows, cols, channels] feature map into a patch matrix.

    Returns a tensor of shape [output_rows * output_cols, kernel_rows * kernel_cols * channels].
    Row n is the window of output position (n // output_cols, n % output_cols), i.e. output
    positions are enumerated row by row. Each window is flattened with the kernel row varying
    slowest and the channel fastest, the same order `w2row` uses for the filters.
    """
    stride_rows, stride_cols = stride
    output_rows, output_cols = output_size
    input_channels = x.shape[2]

    # [output_rows, output_cols, channels, kernel_rows, kernel_cols]
    windows = x.unfold(0, kernel_rows, stride_rows).unfold(1, kernel_cols, stride_cols)
    windows = windows[:output_rows, :output_cols]
    patches = windows.permute(0, 1, 3, 4, 2)

    return patches.reshape(output_rows * output_cols, kernel_rows * kernel_cols * input_channels).contiguous()
