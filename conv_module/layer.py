import logging
from collections.abc import Sequence

import torch
from torch import Tensor, nn

import conv_methods
from conv_module.activations import get_activation
from conv_module.assemble import assemble_output
from conv_module.base import MatMulBackend
from conv_module.config import LayerConfig
from conv_module.errors import ShapeMismatchError, WeightShapeError
from conv_module.hooks import PhaseHook, timed_phase
from conv_module.im2col import im2col
from conv_module.padding import pad_input
from conv_module.shape import Geometry, GeometryCache
from conv_module.weights import CacheState, WeightCache, to_canonical_kernel

logger = logging.getLogger(__name__)


class Convolution2D(nn.Module):
    """
    2D convolution over a single [rows, cols, channels] feature map (or [channels, rows, cols]
    with axis_order="channels_first"), computed as im2col followed by one GEMM.

    Weights are assigned with `set_weights`. In channels_last order W has shape
    [kernel_rows, kernel_cols, input_channels, num_filters]; in channels_first order
    [num_filters, input_channels, kernel_rows, kernel_cols]. Either way it is stored in the
    channels_last layout.
    """

    def __init__(
        self,
        num_filters: int = 1,
        kernel_rows: int = 3,
        kernel_cols: int = 3,
        activation: str = "linear",
        border_mode: str = "valid",
        stride: int | tuple[int, int] = 1,
        axis_order: str = "channels_last",
        use_bias: bool = True,
        backend: str | MatMulBackend = "reference",
        hook: PhaseHook | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__()
        self.config = LayerConfig(
            num_filters=num_filters,
            kernel_rows=kernel_rows,
            kernel_cols=kernel_cols,
            border_mode=border_mode,
            stride=stride,  # type: ignore[arg-type]
            axis_order=axis_order,
            use_bias=use_bias,
            activation=activation,
        )
        self.name = name or "convolution2d"
        self.activation = get_activation(self.config.activation)
        self.backend = conv_methods.create_backend(backend) if isinstance(backend, str) else backend
        self.hook = hook

        self.register_buffer("weight", None)
        self.register_buffer("bias", None)

        self._weights = WeightCache(self.backend)
        self._geometry = GeometryCache(self.config.kernel_shape, self.config.stride, self.config.border_mode)

    @property
    def params(self) -> list[str]:
        return ["W", "b"] if self.config.use_bias else ["W"]

    @property
    def cache_state(self) -> CacheState:
        return self._weights.state

    @property
    def output_shape(self) -> tuple[int, int, int] | None:
        geometry = self._geometry.geometry
        return geometry.output_shape if geometry is not None else None

    @property
    def padding(self) -> tuple[int, int, int, int] | None:
        geometry = self._geometry.geometry
        return geometry.padding if geometry is not None else None

    def set_weights(self, weights: Sequence[Tensor]) -> None:
        if len(weights) != len(self.params):
            raise WeightShapeError(f"{self.name}: expected weight tensors {self.params}, got {len(weights)}")

        kernel = torch.as_tensor(weights[0], dtype=torch.float32)
        if kernel.dim() != 4:
            raise WeightShapeError(f"{self.name}: W must be 4-D, got shape {tuple(kernel.shape)}")
        if self.config.channels_first:
            kernel = to_canonical_kernel(kernel)

        self._assign_canonical(kernel, weights[1] if self.config.use_bias else None)

    def _assign_canonical(self, kernel: Tensor, bias: Tensor | None) -> None:
        kernel = torch.as_tensor(kernel, dtype=torch.float32).clone(memory_format=torch.contiguous_format)
        num_filters, kernel_rows, kernel_cols = self.config.kernel_shape
        if kernel.dim() != 4 or (kernel.shape[0], kernel.shape[1], kernel.shape[3]) != (
            kernel_rows,
            kernel_cols,
            num_filters,
        ):
            raise WeightShapeError(
                f"{self.name}: W has canonical shape {tuple(kernel.shape)}, expected "
                f"[{kernel_rows}, {kernel_cols}, input_channels, {num_filters}]"
            )

        if bias is not None:
            bias = torch.as_tensor(bias, dtype=torch.float32).clone()
            if tuple(bias.shape) != (num_filters,):
                raise WeightShapeError(f"{self.name}: b has shape {tuple(bias.shape)}, expected [{num_filters}]")

        self.weight = kernel
        self.bias = bias
        self._weights.assign(kernel, bias)
        self._weights.refresh()
        logger.debug("%s: weights set, W %s, bias=%s", self.name, tuple(kernel.shape), bias is not None)

    def _load_from_state_dict(
        self, state_dict, prefix, local_metadata, strict, missing_keys, unexpected_keys, error_msgs
    ) -> None:
        # buffers hold the canonical layout; route them through the weight cache
        weight_key, bias_key = prefix + "weight", prefix + "bias"
        if weight_key not in state_dict:
            missing_keys.append(weight_key)
            return
        if self.config.use_bias and bias_key not in state_dict:
            missing_keys.append(bias_key)
            return
        if strict:
            expected = {weight_key, bias_key} if self.config.use_bias else {weight_key}
            for key in state_dict:
                if key.startswith(prefix) and "." not in key[len(prefix) :] and key not in expected:
                    unexpected_keys.append(key)

        bias = state_dict[bias_key] if self.config.use_bias else None
        try:
            self._assign_canonical(state_dict[weight_key], bias)
        except WeightShapeError as exc:
            error_msgs.append(str(exc))

    def _calc_geometry(self, x: Tensor) -> Geometry:
        input_rows, input_cols, input_channels = x.shape
        if input_channels != self._weights.input_channels:
            raise ShapeMismatchError(
                f"{self.name}: input has {input_channels} channels, weights expect {self._weights.input_channels}"
            )
        if self._geometry.is_stale(input_rows, input_cols):
            logger.debug("%s: computing geometry for %dx%d input", self.name, input_rows, input_cols)
        return self._geometry.get(input_rows, input_cols)

    @torch.no_grad()
    def forward(self, x: Tensor) -> Tensor:
        if x.dim() != 3:
            raise ShapeMismatchError(f"{self.name}: expected a 3-D feature map, got shape {tuple(x.shape)}")
        x = x.to(torch.float32)
        if self.config.channels_first:
            x = x.permute(1, 2, 0)

        with timed_phase(self.hook, self.name, "calc_output_shape"):
            geometry = self._calc_geometry(x)
        output_rows, output_cols, _ = geometry.output_shape

        with timed_phase(self.hook, self.name, "pad_input"):
            x = pad_input(x, geometry.padding)

        with timed_phase(self.hook, self.name, "im2col"):
            patches = im2col(
                x,
                self.config.kernel_rows,
                self.config.kernel_cols,
                self.config.stride,
                (output_rows, output_cols),
            )

        with timed_phase(self.hook, self.name, "w2row"):
            prepared = self._weights.prepared()

        with timed_phase(self.hook, self.name, "gemm"):
            result = self.backend.gemm(patches, prepared)

        with timed_phase(self.hook, self.name, "assemble_output"):
            output = assemble_output(result, output_rows, output_cols)

        with timed_phase(self.hook, self.name, "activation"):
            self.activation(output)

        if self.config.channels_first:
            output = output.permute(2, 0, 1).contiguous()
        return output

    def extra_repr(self) -> str:
        num_filters, kernel_rows, kernel_cols = self.config.kernel_shape
        return (
            f"num_filters={num_filters}, kernel_size=({kernel_rows}, {kernel_cols}), "
            f"stride={self.config.stride}, border_mode={self.config.border_mode!r}, "
            f"axis_order={self.config.axis_order!r}, activation={self.config.activation!r}, "
            f"use_bias={self.config.use_bias}, backend={self.backend!r}"
        )
