"""Host-side value movement between external wallets and the vault.

`WalletBook` stands in for the ledger host: it holds external account
balances plus the value currently held by the vault, and calls a per-account
receive hook after crediting a withdrawal. Hooks run arbitrary code and may
call back into the vault, which is exactly the reentrancy surface the vault
ledger has to tolerate.
"""
from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

from .errors import TransferFailed

ReceiveHook = Callable[[str, int], None]
WalletSnapshot = Tuple[Dict[str, int], int]


class WalletBook:
    def __init__(self, balances: Optional[Dict[str, int]] = None, held: int = 0):
        self.balances: Dict[str, int] = dict(balances or {})
        self.held = int(held)
        self._hooks: Dict[str, ReceiveHook] = {}

    def fund(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("cannot fund a negative amount")
        self.balances[account] = self.balances.get(account, 0) + int(amount)

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def on_receive(self, account: str, hook: Optional[ReceiveHook]) -> None:
        """Register (or clear with None) the hook run when `account` receives value."""
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    def pull(self, account: str, amount: int) -> None:
        """Move attached value from an external wallet into the vault."""
        available = self.balance_of(account)
        if available < amount:
            raise TransferFailed(f"wallet {account} holds {available}, cannot attach {amount}")
        self.balances[account] = available - amount
        self.held += amount

    def send(self, account: str, amount: int) -> None:
        """Move value out of the vault to an external wallet, then run its hook."""
        if self.held < amount:
            raise TransferFailed(f"vault holds {self.held}, cannot send {amount}")
        self.held -= amount
        self.balances[account] = self.balance_of(account) + amount
        hook = self._hooks.get(account)
        if hook is not None:
            hook(account, amount)

    def snapshot(self) -> WalletSnapshot:
        return dict(self.balances), self.held

    def restore(self, snap: WalletSnapshot) -> None:
        balances, held = snap
        self.balances = dict(balances)
        self.held = held
