"""Feed-forward network for application success."""

from typing import Dict, Sequence

import torch
import torch.nn as nn

from success_signal_ai.schemas.feature_vector import FEATURE_COUNT

HIDDEN_LAYERS = (64, 32, 16)
DROPOUT_RATES = (0.3, 0.2, 0.0)


class SuccessNet(nn.Module):
    """
    34 -> 64 (ReLU, dropout 0.3) -> 32 (ReLU, dropout 0.2) -> 16 (ReLU) -> 1.
    forward() returns logits; apply sigmoid for probabilities.
    """

    def __init__(
        self,
        input_dim: int = FEATURE_COUNT,
        hidden_layers: Sequence[int] = HIDDEN_LAYERS,
        dropout_rates: Sequence[float] = DROPOUT_RATES,
    ):
        super().__init__()
        self.input_dim = input_dim
        self.hidden_layers = tuple(hidden_layers)
        self.dropout_rates = tuple(dropout_rates)

        layers = []
        prev_dim = input_dim
        for hidden_dim, rate in zip(self.hidden_layers, self.dropout_rates):
            layers.append(nn.Linear(prev_dim, hidden_dim))
            layers.append(nn.ReLU())
            if rate > 0:
                layers.append(nn.Dropout(rate))
            prev_dim = hidden_dim
        self.hidden = nn.Sequential(*layers)
        self.output = nn.Linear(prev_dim, 1)

        self._initialize_weights()

    def _initialize_weights(self):
        """He init for ReLU layers, Xavier for the sigmoid output."""
        for module in self.hidden.modules():
            if isinstance(module, nn.Linear):
                nn.init.kaiming_normal_(module.weight, nonlinearity="relu")
                nn.init.zeros_(module.bias)
        nn.init.xavier_uniform_(self.output.weight)
        nn.init.zeros_(self.output.bias)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.output(self.hidden(x)).squeeze(-1)

    def architecture(self) -> Dict[str, object]:
        layers = []
        for hidden_dim, rate in zip(self.hidden_layers, self.dropout_rates):
            layers.append({"type": "dense", "units": hidden_dim, "activation": "relu"})
            if rate > 0:
                layers.append({"type": "dropout", "rate": rate})
        layers.append({"type": "dense", "units": 1, "activation": "sigmoid"})
        return {
            "input_dim": self.input_dim,
            "layers": layers,
            "total_params": sum(p.numel() for p in self.parameters()),
            "loss": "binary_crossentropy",
            "optimizer": "adam",
        }
