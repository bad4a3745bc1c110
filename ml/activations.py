"""
Activation functions for the hidden layers of the spam classifier.

Each entry carries its forward function and its derivative. Both take the raw
pre-activation tensor. Sigmoid and tanh derivatives are expressed through the
activated value f(x); relu and leaky relu derivatives read x directly.
"""

from typing import Callable, NamedTuple

import torch

from ml.errors import ConfigurationError

LEAKY_SLOPE = 0.01


class ActivationFunction(NamedTuple):
    name: str
    forward: Callable[[torch.Tensor], torch.Tensor]
    derivative: Callable[[torch.Tensor], torch.Tensor]


def sigmoid(x):
    return 1.0 / (1.0 + torch.exp(-x))


def sigmoid_derivative(x):
    s = sigmoid(x)
    return s * (1 - s)


def tanh(x):
    return torch.tanh(x)


def tanh_derivative(x):
    t = torch.tanh(x)
    return 1 - t * t


def relu(x):
    return torch.clamp(x, min=0.0)


def relu_derivative(x):
    return (x > 0).to(x.dtype)


def leaky_relu(x):
    return torch.where(x > 0, x, LEAKY_SLOPE * x)


def leaky_relu_derivative(x):
    return torch.where(x > 0, torch.ones_like(x), torch.full_like(x, LEAKY_SLOPE))


SIGMOID = ActivationFunction('SIGMOID', sigmoid, sigmoid_derivative)
TANH = ActivationFunction('TANH', tanh, tanh_derivative)
RELU = ActivationFunction('RELU', relu, relu_derivative)
LEAKY_RELU = ActivationFunction('LEAKY_RELU', leaky_relu, leaky_relu_derivative)

ACTIVATIONS = {fn.name: fn for fn in (SIGMOID, TANH, RELU, LEAKY_RELU)}


def activation_names():
    """Names accepted by get_activation, in declaration order."""
    return list(ACTIVATIONS)


def get_activation(name):
    """
    Look up an activation by name (case-insensitive).

    @param name: One of SIGMOID, TANH, RELU, LEAKY_RELU, or an ActivationFunction
    @returns: The matching ActivationFunction
    @raises ConfigurationError: if the name is not recognised
    """
    if isinstance(name, ActivationFunction):
        return name
    key = str(name).strip().upper() if name is not None else ''
    try:
        return ACTIVATIONS[key]
    except KeyError:
        raise ConfigurationError(
            f"Invalid activation function '{name}'. Valid options: {', '.join(ACTIVATIONS)}"
        ) from None
