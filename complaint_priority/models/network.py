"""Feed-forward regressor mapping an encoded complaint to a score in (0, 1)."""

from __future__ import annotations

import torch
from torch import nn


L2_PENALTY = 5e-4


class PriorityNet(nn.Module):
    """Dense(96) -> BN -> Dropout(.25) -> Dense(48) -> Dropout(.2) -> Dense(24) -> Dropout(.15) -> Dense(1, sigmoid).

    The two widest layers carry an L2 kernel penalty, added to the loss by
    ``l2_penalty`` rather than through optimizer weight decay so that biases
    and the narrow layers stay unregularised.
    """

    def __init__(self, input_size: int, l2: float = L2_PENALTY):
        super().__init__()
        self.input_size = input_size
        self.l2 = l2
        self.dense1 = nn.Linear(input_size, 96)
        self.norm1 = nn.BatchNorm1d(96)
        self.drop1 = nn.Dropout(0.25)
        self.dense2 = nn.Linear(96, 48)
        self.drop2 = nn.Dropout(0.2)
        self.dense3 = nn.Linear(48, 24)
        self.drop3 = nn.Dropout(0.15)
        self.out = nn.Linear(24, 1)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        x = self.drop1(self.norm1(torch.relu(self.dense1(x))))
        x = self.drop2(torch.relu(self.dense2(x)))
        x = self.drop3(torch.relu(self.dense3(x)))
        return torch.sigmoid(self.out(x))

    def l2_penalty(self) -> torch.Tensor:
        return self.l2 * (self.dense1.weight.pow(2).sum() + self.dense2.weight.pow(2).sum())


def build_model(input_size: int, seed: int | None = None) -> PriorityNet:
    if seed is not None:
        torch.manual_seed(seed)
    return PriorityNet(input_size)


__all__ = ["PriorityNet", "build_model", "L2_PENALTY"]
