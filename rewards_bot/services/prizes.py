# rewards_bot/services/prizes.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True, slots=True)
class Prize:
    value: int
    label: str
    weight: int


# Weights sum to 100; a zero prize is a normal outcome, not an error
PRIZE_TABLE: tuple[Prize, ...] = (
    Prize(value=5, label="+5 points", weight=40),
    Prize(value=10, label="+10 points", weight=30),
    Prize(value=15, label="+15 points", weight=10),
    Prize(value=0, label="Try again tomorrow", weight=20),
)


class PrizeSelector:
    def __init__(self, table: Sequence[Prize] = PRIZE_TABLE, rng: random.Random | None = None) -> None:
        if not table:
            raise ValueError("Prize table is empty")
        if any(p.weight < 0 for p in table):
            raise ValueError("Prize weights must be non-negative")
        self.table = tuple(table)
        self.total_weight = sum(p.weight for p in self.table)
        if self.total_weight <= 0:
            raise ValueError("Prize weights must sum to a positive total")
        self._rng = rng or random.SystemRandom()

    def pick(self, roll: float) -> Prize:
        """Walk the table with `roll` in [0, total_weight)."""
        remainder = roll
        for prize in self.table:
            remainder -= prize.weight
            if remainder <= 0 and prize.weight > 0:
                return prize
        return self.table[-1]

    def draw(self) -> Prize:
        return self.pick(self._rng.random() * self.total_weight)
