"""
SpamClassifier Neural Network

Configurable feed-forward network for spam detection, trained one sample at a
time with hand-written backpropagation:
- DenseLayer: weight buffer [inputs][outputs] and bias buffer [outputs]
- Hidden layers: configurable activation (sigmoid, tanh, relu, leaky relu)
- Output layer: a single sigmoid unit giving P(spam)
"""

import numbers
from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence, Tuple

import torch
import torch.nn as nn

from backend.config import INIT_SEED, LEARNING_RATE, WEIGHT_INIT_SCALE
from ml.activations import SIGMOID, get_activation
from ml.errors import ConfigurationError, InputSizeMismatchError, InvalidArchitecture

OUTPUT_SIZE = 1  # Binary classification: spam (1) or ham (0)

# Output probabilities are kept inside the open interval (0, 1)
PROBABILITY_FLOOR = torch.finfo(torch.float64).tiny
PROBABILITY_CEILING = 1.0 - torch.finfo(torch.float64).eps


def check_hidden_layer_sizes(hidden_layer_sizes):
    """
    @raises InvalidArchitecture: if the list is empty or holds a non-positive size
    """
    if hidden_layer_sizes is None or len(hidden_layer_sizes) == 0:
        raise InvalidArchitecture("Hidden layer sizes must be specified")
    for size in hidden_layer_sizes:
        if not isinstance(size, numbers.Integral) or isinstance(size, bool) or size <= 0:
            raise InvalidArchitecture("All hidden layer sizes must be positive integers")


@dataclass
class NetworkConfig:
    """
    Architecture and optimisation settings for a SpamClassifier.

    @param input_size: Length of every feature vector
    @param hidden_layer_sizes: Neurons per hidden layer, at least one layer
    @param activation: Hidden layer activation name (output layer is always sigmoid)
    @param learning_rate: Step size of the online gradient descent update
    @param seed: Seed for the Gaussian weight/bias initialization
    """
    input_size: int
    hidden_layer_sizes: Tuple[int, ...]
    activation: str = 'SIGMOID'
    learning_rate: float = LEARNING_RATE
    seed: int = INIT_SEED
    output_size: int = field(default=OUTPUT_SIZE, init=False)

    def __post_init__(self):
        check_hidden_layer_sizes(self.hidden_layer_sizes)
        if not isinstance(self.input_size, numbers.Integral) or self.input_size <= 0:
            raise InvalidArchitecture(f"Input size must be a positive integer, got {self.input_size}")
        if self.learning_rate is None or not self.learning_rate > 0:
            raise ConfigurationError(f"Learning rate must be positive, got {self.learning_rate}")

        self.input_size = int(self.input_size)
        self.hidden_layer_sizes = tuple(int(size) for size in self.hidden_layer_sizes)
        self.activation = get_activation(self.activation).name
        self.learning_rate = float(self.learning_rate)

    @property
    def num_hidden_layers(self):
        return len(self.hidden_layer_sizes)

    def layer_shapes(self):
        """(inputs, outputs) for layer 0..L, where layer L is the output layer."""
        sizes = [self.input_size, *self.hidden_layer_sizes, self.output_size]
        return list(zip(sizes[:-1], sizes[1:]))


class DenseLayer(nn.Module):
    """
    Fully connected layer parameters.

    weight[i, j] connects input neuron i to output neuron j. Both buffers are
    plain tensors, so out-of-range indexing raises IndexError.
    """
    def __init__(self, in_features, out_features, generator=None):
        super().__init__()
        self.in_features = in_features
        self.out_features = out_features
        # Draw every weight (row by row) before the biases, scaled Gaussian(0, 1)
        weight = torch.randn(in_features, out_features, generator=generator, dtype=torch.float64)
        bias = torch.randn(out_features, generator=generator, dtype=torch.float64)
        self.register_buffer('weight', weight * WEIGHT_INIT_SCALE)
        self.register_buffer('bias', bias * WEIGHT_INIT_SCALE)

    def pre_activation(self, x):
        # z[j] = bias[j] + sum_i x[i] * weight[i][j]
        return self.bias + x @ self.weight

    def extra_repr(self):
        return f"in_features={self.in_features}, out_features={self.out_features}"


class ForwardTrace(NamedTuple):
    """
    Intermediate values kept by a training forward pass.

    pre_activations[l] is layer l's weighted sum; outputs[l] is layer l's input
    (outputs[0] is the original feature vector, outputs[-1] the network output).
    """
    pre_activations: List[torch.Tensor]
    outputs: List[torch.Tensor]

    @property
    def output(self):
        return self.outputs[-1][0].item()


class SpamClassifier(nn.Module):
    """
    Multi-layer perceptron for binary spam classification.

    Architecture:
    1. Layer 0: input_size -> hidden_layer_sizes[0]
    2. Layer i: hidden_layer_sizes[i-1] -> hidden_layer_sizes[i]
    3. Output:  hidden_layer_sizes[-1] -> 1 (sigmoid)
    """
    def __init__(self, config: NetworkConfig):
        """
        Initializes every layer from a generator seeded with config.seed, so two
        networks built from the same config start with identical parameters.
        """
        super().__init__()
        self.config = config
        self.activation = get_activation(config.activation)

        generator = torch.Generator().manual_seed(config.seed)
        self.layers = nn.ModuleList(
            DenseLayer(n_in, n_out, generator) for n_in, n_out in config.layer_shapes()
        )

    @property
    def input_size(self):
        return self.config.input_size

    @property
    def hidden_layer_sizes(self):
        return list(self.config.hidden_layer_sizes)

    @property
    def num_hidden_layers(self):
        return self.config.num_hidden_layers

    @property
    def learning_rate(self):
        return self.config.learning_rate

    def _activation_for(self, layer_index):
        # The output layer is sigmoid whatever the hidden activation is
        if layer_index < self.num_hidden_layers:
            return self.activation
        return SIGMOID

    def _activate(self, layer_index, z):
        a = self._activation_for(layer_index).forward(z)
        if layer_index == self.num_hidden_layers:
            # float64 sigmoid rounds to exactly 0.0 / 1.0 for large logits
            a = torch.clamp(a, PROBABILITY_FLOOR, PROBABILITY_CEILING)
        return a

    def _as_input(self, features):
        x = torch.as_tensor(features, dtype=torch.float64)
        if x.dim() != 1 or x.shape[0] != self.input_size:
            raise InputSizeMismatchError(self.input_size, x.numel())
        return x

    def forward(self, x):
        """
        Forward pass through every layer
        @param x: Feature tensor [input_size]
        @returns: Output tensor [1] holding P(spam)
        """
        for index, layer in enumerate(self.layers):
            # [n_in] -> [n_out]
            x = self._activate(index, layer.pre_activation(x))
        return x

    def predict(self, features: Sequence[float]) -> float:
        """
        Spam probability for one feature vector, strictly between 0 and 1.

        @raises InputSizeMismatchError: if len(features) != input_size
        """
        return self.forward(self._as_input(features))[0].item()

    def forward_trace(self, features) -> ForwardTrace:
        """Forward pass that keeps every layer's pre-activation and output."""
        x = self._as_input(features)
        pre_activations = []
        outputs = [x.clone()]  # outputs[0]: [input_size]
        for index, layer in enumerate(self.layers):
            # z: [n_out] weighted sums, kept raw for the activation derivative
            z = layer.pre_activation(outputs[-1])
            pre_activations.append(z)
            outputs.append(self._activate(index, z))
        return ForwardTrace(pre_activations, outputs)

    def backward(self, trace: ForwardTrace, target) -> List[torch.Tensor]:
        """
        Per-layer error signals for a single example, output layer first computed.

        @returns: deltas[l] for layer 0..L
        """
        # Step 1: output delta [1], sigmoid derivative written in terms of the output
        output = trace.outputs[-1]
        deltas = [None] * len(self.layers)
        deltas[-1] = (target - output) * output * (1 - output)

        # Step 2: walk the hidden layers backwards
        for index in range(self.num_hidden_layers - 1, -1, -1):
            # weight [n_out, n_next] @ delta [n_next] -> [n_out]
            downstream = self.layers[index + 1].weight @ deltas[index + 1]
            deltas[index] = downstream * self.activation.derivative(trace.pre_activations[index])
        return deltas

    def apply_gradients(self, trace: ForwardTrace, deltas: List[torch.Tensor]):
        """In-place online gradient step on every weight and bias."""
        lr = self.learning_rate
        for index, layer in enumerate(self.layers):
            # outer(input [n_in], delta [n_out]) -> [n_in, n_out], same shape as weight
            layer.weight += lr * torch.outer(trace.outputs[index], deltas[index])
            layer.bias += lr * deltas[index]

    def train_sample(self, features, target) -> List[torch.Tensor]:
        """
        Trains the network on one example: forward, backpropagate, update.

        @param features: Feature vector [input_size]
        @param target: True label (0 = ham, 1 = spam)
        @returns: The deltas used for the update
        """
        trace = self.forward_trace(features)
        deltas = self.backward(trace, float(target))
        self.apply_gradients(trace, deltas)
        return deltas

    def load_parameters(self, weights, biases):
        """Overwrite every layer's weight and bias, checking shapes."""
        if len(weights) != len(self.layers) or len(biases) != len(self.layers):
            raise InvalidArchitecture(
                f"Expected parameters for {len(self.layers)} layers, got {len(weights)} weights and {len(biases)} biases"
            )
        for layer, weight, bias in zip(self.layers, weights, biases):
            weight = torch.as_tensor(weight, dtype=torch.float64)
            bias = torch.as_tensor(bias, dtype=torch.float64)
            if weight.shape != layer.weight.shape or bias.shape != layer.bias.shape:
                raise InvalidArchitecture(
                    f"Parameter shape {tuple(weight.shape)}/{tuple(bias.shape)} does not match "
                    f"layer {tuple(layer.weight.shape)}/{tuple(layer.bias.shape)}"
                )
            layer.weight.copy_(weight)
            layer.bias.copy_(bias)

    def describe(self):
        """Architecture summary used by the model-info endpoints."""
        return {
            'input_size': self.input_size,
            'hidden_layer_sizes': self.hidden_layer_sizes,
            'num_hidden_layers': self.num_hidden_layers,
            'activation_function': self.activation.name,
            'learning_rate': self.learning_rate,
        }
