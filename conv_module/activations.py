"""
Pointwise activations applied in place to the assembled [rows, cols, filters] output.
"""

from collections.abc import Callable

import torch
from torch import Tensor

from conv_module.errors import ConfigurationError

Activation = Callable[[Tensor], Tensor]


def linear(x: Tensor) -> Tensor:
    return x


def relu(x: Tensor) -> Tensor:
    return x.clamp_(min=0.0)


def sigmoid(x: Tensor) -> Tensor:
    return x.sigmoid_()


def hard_sigmoid(x: Tensor) -> Tensor:
    return x.mul_(0.2).add_(0.5).clamp_(0.0, 1.0)


def tanh(x: Tensor) -> Tensor:
    return x.tanh_()


def softmax(x: Tensor) -> Tensor:
    # over the channel (last) axis
    return x.copy_(torch.softmax(x, dim=-1))


def softplus(x: Tensor) -> Tensor:
    return x.copy_(torch.nn.functional.softplus(x))


def softsign(x: Tensor) -> Tensor:
    return x.div_(x.abs() + 1.0)


def elu(x: Tensor, alpha: float = 1.0) -> Tensor:
    return x.copy_(torch.nn.functional.elu(x, alpha=alpha))


ACTIVATIONS: dict[str, Activation] = {
    "linear": linear,
    "relu": relu,
    "sigmoid": sigmoid,
    "hard_sigmoid": hard_sigmoid,
    "tanh": tanh,
    "softmax": softmax,
    "softplus": softplus,
    "softsign": softsign,
    "elu": elu,
}


def get_activation(name: str) -> Activation:
    try:
        return ACTIVATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown activation {name!r}, expected one of {', '.join(ACTIVATIONS)}"
        ) from None
