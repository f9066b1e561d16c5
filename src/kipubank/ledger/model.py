from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal

from ..units import parse_ether

Operation = Literal["deposit", "withdraw"]

# Fixed at design time; not configurable per deployment.
BANK_CAP = parse_ether("1000")


@dataclass(frozen=True)
class VaultConfig:
    withdrawal_limit: int
    bank_cap: int = BANK_CAP


@dataclass
class LedgerState:
    balances: Dict[str, int] = field(default_factory=dict)
    total_deposits: int = 0
    deposit_count: int = 0
    withdrawal_count: int = 0

    def copy(self) -> "LedgerState":
        return LedgerState(
            balances=dict(self.balances),
            total_deposits=self.total_deposits,
            deposit_count=self.deposit_count,
            withdrawal_count=self.withdrawal_count,
        )

    def restore(self, snap: "LedgerState") -> None:
        """Overwrite this state in place with a previously taken copy."""
        self.balances = dict(snap.balances)
        self.total_deposits = snap.total_deposits
        self.deposit_count = snap.deposit_count
        self.withdrawal_count = snap.withdrawal_count

    def check_invariants(self, config: VaultConfig) -> None:
        """Raise ValueError if the state could not have been produced by the ledger."""
        negative = [acct for acct, bal in self.balances.items() if bal < 0]
        if negative:
            raise ValueError(f"negative balances for accounts: {sorted(negative)}")
        if min(self.total_deposits, self.deposit_count, self.withdrawal_count) < 0:
            raise ValueError("counters must be non-negative")
        total = sum(self.balances.values())
        if total != self.total_deposits:
            raise ValueError(f"total_deposits {self.total_deposits} != sum of balances {total}")
        if self.total_deposits > config.bank_cap:
            raise ValueError(f"total_deposits {self.total_deposits} exceeds bank cap {config.bank_cap}")


@dataclass
class Receipt:
    operation: Operation
    account: str
    amount: int
    balance: int
