"""
Debt status for a negative balance.

Debt never locks features; the level only drives a study bonus multiplier
shown to the user.
"""

from __future__ import annotations

from dataclasses import dataclass

DEBT_LEVEL_2 = 500
DEBT_LEVEL_3 = 1000

BONUS_MULTIPLIER = {0: 1.0, 1: 1.5, 2: 2.0, 3: 3.0}


@dataclass(frozen=True)
class DebtStatus:
    balance: int
    debt: int
    warning_level: int
    bonus_multiplier: float

    @property
    def in_debt(self) -> bool:
        return self.debt > 0


def debt_status(balance: int) -> DebtStatus:
    """
    Warning level for a balance.

    0: solvent, 1: in debt, 2: 500+ behind, 3: 1000+ behind.
    """
    balance = int(balance)
    if balance >= 0:
        level = 0
    elif -balance >= DEBT_LEVEL_3:
        level = 3
    elif -balance >= DEBT_LEVEL_2:
        level = 2
    else:
        level = 1
    return DebtStatus(
        balance=balance,
        debt=max(0, -balance),
        warning_level=level,
        bonus_multiplier=BONUS_MULTIPLIER[level],
    )
