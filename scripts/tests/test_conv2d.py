import pytest
import torch
from torch import Tensor

from conv_methods import AVAILABLE_BACKENDS
from conv_module import Convolution2D

BACKENDS: list[str] = [item["short_name"] for item in AVAILABLE_BACKENDS.values()]

pytestmark = pytest.mark.parametrize("backend", BACKENDS)


@pytest.fixture
def sequential_input() -> Tensor:
    return torch.arange(25, dtype=torch.float32).reshape(5, 5, 1)


@pytest.fixture
def ones_kernel() -> list[Tensor]:
    return [torch.ones(3, 3, 1, 1), torch.zeros(1)]


@pytest.mark.forward
@pytest.mark.parametrize(
    "stride,border_mode",
    [(1, "valid"), (2, "valid"), (1, "same"), (2, "same"), ((2, 1), "same"), ((1, 3), "valid")],
)
def test_conv2d_correctness(backend: str, stride, border_mode: str, torch_conv2d) -> None:
    """
    Output must match torch.nn.functional.conv2d with the same weights and padding.
    """
    torch.manual_seed(42)
    x = torch.randn(9, 8, 3)
    weight = torch.randn(3, 3, 3, 4)
    bias = torch.randn(4)

    layer = Convolution2D(
        num_filters=4, kernel_rows=3, kernel_cols=3, border_mode=border_mode, stride=stride, backend=backend
    )
    layer.set_weights([weight, bias])

    custom_output = layer(x)
    reference_output = torch_conv2d(x, weight, bias, layer.config.stride, layer.padding)

    assert custom_output.shape == layer.output_shape
    assert torch.allclose(custom_output, reference_output, rtol=1e-4, atol=1e-4), (
        f"Outputs differ for {backend}: max diff {(custom_output - reference_output).abs().max().item()}"
    )


@pytest.mark.forward
def test_conv2d_matches_direct_definition(backend: str, direct_conv2d) -> None:
    torch.manual_seed(0)
    x = torch.randn(6, 7, 2)
    weight = torch.randn(2, 3, 2, 3)
    bias = torch.randn(3)

    layer = Convolution2D(
        num_filters=3, kernel_rows=2, kernel_cols=3, border_mode="same", stride=(1, 2), backend=backend
    )
    layer.set_weights([weight, bias])

    output = layer(x)
    expected = direct_conv2d(x, weight, bias, (1, 2), layer.padding)

    assert output.shape == expected.shape
    assert torch.allclose(output, expected, rtol=1e-4, atol=1e-4)


@pytest.mark.forward
def test_conv2d_sequential_input_valid(backend: str, sequential_input: Tensor, ones_kernel: list[Tensor]) -> None:
    layer = Convolution2D(num_filters=1, kernel_rows=3, kernel_cols=3, border_mode="valid", backend=backend)
    layer.set_weights(ones_kernel)

    output = layer(sequential_input)

    expected = torch.tensor([[54.0, 63.0, 72.0], [99.0, 108.0, 117.0], [144.0, 153.0, 162.0]]).reshape(3, 3, 1)
    assert output.shape == (3, 3, 1)
    assert layer.padding == (0, 0, 0, 0)
    assert output[0, 0, 0].item() == 54.0
    assert torch.allclose(output, expected)


@pytest.mark.forward
def test_conv2d_sequential_input_same(backend: str, sequential_input: Tensor, ones_kernel: list[Tensor]) -> None:
    layer = Convolution2D(num_filters=1, kernel_rows=3, kernel_cols=3, border_mode="same", backend=backend)
    layer.set_weights(ones_kernel)

    output = layer(sequential_input)

    assert output.shape == (5, 5, 1)
    assert layer.padding == (1, 1, 1, 1)
    # edges only see the zero-padded window
    assert output[0, 0, 0].item() == 0 + 1 + 5 + 6
    assert output[0, 2, 0].item() == 1 + 2 + 3 + 6 + 7 + 8
    assert output[4, 4, 0].item() == 18 + 19 + 23 + 24
    assert output[2, 2, 0].item() == 108.0
    # the interior equals the valid-mode result
    assert output[1:4, 1:4, 0].tolist() == [[54.0, 63.0, 72.0], [99.0, 108.0, 117.0], [144.0, 153.0, 162.0]]


@pytest.mark.forward
def test_conv2d_without_bias_equals_zero_bias(backend: str) -> None:
    torch.manual_seed(1)
    x = torch.randn(6, 6, 2)
    weight = torch.randn(3, 3, 2, 5)

    no_bias = Convolution2D(num_filters=5, use_bias=False, border_mode="same", backend=backend)
    no_bias.set_weights([weight])
    zero_bias = Convolution2D(num_filters=5, use_bias=True, border_mode="same", backend=backend)
    zero_bias.set_weights([weight, torch.zeros(5)])

    assert no_bias.params == ["W"]
    assert torch.equal(no_bias(x), zero_bias(x))


@pytest.mark.forward
def test_conv2d_bias_is_added_per_filter(backend: str) -> None:
    x = torch.zeros(4, 4, 1)
    layer = Convolution2D(num_filters=2, kernel_rows=2, kernel_cols=2, backend=backend)
    layer.set_weights([torch.randn(2, 2, 1, 2), torch.tensor([1.5, -2.0])])

    output = layer(x)

    assert torch.allclose(output[..., 0], torch.full((3, 3), 1.5))
    assert torch.allclose(output[..., 1], torch.full((3, 3), -2.0))


@pytest.mark.forward
def test_conv2d_channels_first(backend: str) -> None:
    torch.manual_seed(2)
    x = torch.randn(7, 7, 3)
    weight = torch.randn(3, 3, 3, 4)
    bias = torch.randn(4)

    channels_last = Convolution2D(num_filters=4, border_mode="same", stride=2, backend=backend)
    channels_last.set_weights([weight, bias])
    channels_first = Convolution2D(
        num_filters=4, border_mode="same", stride=2, axis_order="channels_first", backend=backend
    )
    channels_first.set_weights([weight.permute(3, 2, 0, 1), bias])

    expected = channels_last(x)
    output = channels_first(x.permute(2, 0, 1))

    assert output.shape == (4, 4, 4)
    assert torch.allclose(output, expected.permute(2, 0, 1), rtol=1e-5, atol=1e-6)


@pytest.mark.forward
def test_conv2d_applies_activation(backend: str) -> None:
    torch.manual_seed(3)
    x = torch.randn(5, 5, 2)
    weights = [torch.randn(3, 3, 2, 3), torch.randn(3)]

    linear = Convolution2D(num_filters=3, backend=backend)
    linear.set_weights(weights)
    relu = Convolution2D(num_filters=3, activation="relu", backend=backend)
    relu.set_weights(weights)

    assert torch.equal(relu(x), linear(x).clamp(min=0.0))


@pytest.mark.forward
def test_conv2d_does_not_mutate_input(backend: str) -> None:
    x = torch.randn(5, 5, 2)
    original = x.clone()
    layer = Convolution2D(num_filters=2, border_mode="same", activation="relu", backend=backend)
    layer.set_weights([torch.randn(3, 3, 2, 2), torch.randn(2)])

    layer(x)

    assert torch.equal(x, original)


@pytest.mark.forward
def test_conv2d_channels_first_identity_round_trip(backend: str) -> None:
    torch.manual_seed(4)
    channels = 3
    x = torch.randn(channels, 6, 5)
    layer = Convolution2D(
        num_filters=channels,
        kernel_rows=1,
        kernel_cols=1,
        axis_order="channels_first",
        use_bias=False,
        backend=backend,
    )
    layer.set_weights([torch.eye(channels).reshape(channels, channels, 1, 1)])

    output = layer(x)

    assert output.shape == x.shape
    assert torch.equal(output, x)
