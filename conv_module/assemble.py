from torch import Tensor

from conv_module.errors import ShapeMismatchError


def assemble_output(result: Tensor, output_rows: int, output_cols: int) -> Tensor:
    """
    Inverse of the im2col row order: row n of the GEMM result becomes output
    position (n // output_cols, n % output_cols).
    """
    num_patches, num_filters = result.shape
    if num_patches != output_rows * output_cols:
        raise ShapeMismatchError(f"GEMM result has {num_patches} rows, expected {output_rows * output_cols}")
    return result.reshape(output_rows, output_cols, num_filters).contiguous()
