from __future__ import annotations

import json
import logging
import os
import time
from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque, Iterator, List, Optional

import pandas as pd

from ..events.bus import publish as publish_event
from ..events.schema import Deposit, EventEnvelope, VaultEvent, Withdrawal
from ..metrics.vault import get_deposits_total, get_reverts_total, get_withdrawals_total, set_total_deposits
from .errors import CapacityExceeded, InsufficientFunds, InvalidAmount, LimitExceeded, TransferFailed, VaultError
from .model import BANK_CAP, LedgerState, Operation, Receipt, VaultConfig
from .transport import WalletBook

log = logging.getLogger("kipubank.ledger")

Publisher = Callable[[EventEnvelope], None]


def _require_amount(amount) -> int:
    # bool is an int subclass; True must not deposit one wei.
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"amount must be an integer number of wei, got {amount!r}")
    if amount <= 0:
        raise InvalidAmount(f"amount must be positive, got {amount}")
    return amount


class VaultLedger:
    """Custodial vault with a global bank cap and a per-withdrawal limit.

    Every public mutation runs as one transaction: checks, then state effects,
    then the outbound value transfer. Any failure restores the state and the
    wallet book to their values on entry and discards the transaction's
    events. Transactions nest, so a receive hook calling back into the ledger
    gets its own rollback scope and sees already-debited balances.

    Events are appended to `events` and handed to `publish` only once the
    outermost transaction commits. `events` is an in-process log of the most
    recent `max_events` committed events (None keeps all of them); the bus is
    the durable record. `sequence` numbers published envelopes and carries over
    from a restored snapshot.
    """

    def __init__(
        self,
        withdrawal_limit: int,
        bank_cap: int = BANK_CAP,
        *,
        transport: Optional[WalletBook] = None,
        publish: Optional[Publisher] = None,
        state: Optional[LedgerState] = None,
        name: str = "KipuBank",
        sequence: int = 0,
        max_events: Optional[int] = 10_000,
    ):
        if isinstance(withdrawal_limit, bool) or not isinstance(withdrawal_limit, int) or withdrawal_limit <= 0:
            raise InvalidAmount(f"withdrawal limit must be a positive integer, got {withdrawal_limit!r}")
        if isinstance(bank_cap, bool) or not isinstance(bank_cap, int) or bank_cap <= 0:
            raise InvalidAmount(f"bank cap must be a positive integer, got {bank_cap!r}")
        self.config = VaultConfig(withdrawal_limit=withdrawal_limit, bank_cap=bank_cap)
        self.state = state if state is not None else LedgerState()
        self.state.check_invariants(self.config)
        self.transport = transport if transport is not None else WalletBook(held=self.state.total_deposits)
        self.name = name
        self._publish = publish if publish is not None else publish_event
        self.events: Deque[VaultEvent] = deque(maxlen=max_events)
        self._pending: List[VaultEvent] = []
        self._depth = 0
        self._sequence = int(sequence)
        # Metrics
        self._deposits_counter = get_deposits_total()
        self._withdrawals_counter = get_withdrawals_total()
        self._reverts_counter = get_reverts_total()
        set_total_deposits(self.name, self.state.total_deposits)

    # ---- read-only surface ----

    @property
    def WITHDRAWAL_LIMIT(self) -> int:
        return self.config.withdrawal_limit

    @property
    def BANK_CAP(self) -> int:
        return self.config.bank_cap

    @property
    def total_deposits(self) -> int:
        return self.state.total_deposits

    @property
    def deposit_count(self) -> int:
        return self.state.deposit_count

    @property
    def withdrawal_count(self) -> int:
        return self.state.withdrawal_count

    @property
    def sequence(self) -> int:
        """Sequence number of the last published event envelope."""
        return self._sequence

    def get_vault_balance(self, account: str) -> int:
        return self.state.balances.get(account, 0)

    def get_my_balance(self, caller: str) -> int:
        return self.get_vault_balance(caller)

    # ---- mutations ----

    def deposit(self, account: str, amount: int) -> Receipt:
        with self._transaction("deposit", account, amount):
            amount = _require_amount(amount)
            if self.state.total_deposits + amount > self.config.bank_cap:
                raise CapacityExceeded(
                    f"deposit of {amount} would raise total deposits to "
                    f"{self.state.total_deposits + amount}, above bank cap {self.config.bank_cap}"
                )
            self.transport.pull(account, amount)
            balance = self.state.balances.get(account, 0) + amount
            self.state.balances[account] = balance
            self.state.total_deposits += amount
            self.state.deposit_count += 1
            self._emit(Deposit(ts=_now_ms(), vault=self.name, account=account, amount=amount, balance=balance))
        return Receipt(operation="deposit", account=account, amount=amount, balance=balance)

    def withdraw(self, account: str, amount: int) -> Receipt:
        with self._transaction("withdraw", account, amount):
            amount = _require_amount(amount)
            if amount > self.config.withdrawal_limit:
                raise LimitExceeded(
                    f"withdrawal of {amount} exceeds withdrawal limit {self.config.withdrawal_limit}"
                )
            current = self.state.balances.get(account, 0)
            if amount > current:
                raise InsufficientFunds(f"withdrawal of {amount} exceeds vault balance {current} of {account}")
            # Effects are committed before the transfer; the recipient may reenter.
            balance = current - amount
            self.state.balances[account] = balance
            self.state.total_deposits -= amount
            self.state.withdrawal_count += 1
            self._emit(Withdrawal(ts=_now_ms(), vault=self.name, account=account, amount=amount, balance=balance))
            try:
                self.transport.send(account, amount)
            except TransferFailed:
                raise
            except Exception as e:
                raise TransferFailed(f"transfer of {amount} to {account} failed: {e}") from e
        return Receipt(operation="withdraw", account=account, amount=amount, balance=balance)

    # ---- transactions ----

    @contextmanager
    def _transaction(self, operation: Operation, account: str, amount) -> Iterator[None]:
        state_snapshot = self.state.copy()
        wallet_snapshot = self.transport.snapshot()
        mark = len(self._pending)
        self._depth += 1
        try:
            yield
        except BaseException as e:
            # KeyboardInterrupt/SystemExit from a receive hook must not leave a half-applied call.
            self.state.restore(state_snapshot)
            self.transport.restore(wallet_snapshot)
            del self._pending[mark:]
            if not isinstance(e, Exception):
                raise
            reason = e.reason if isinstance(e, VaultError) else "error"
            self._reverts_counter.labels(self.name, operation, reason).inc()
            log.warning(json.dumps({
                "event": "revert",
                "vault": self.name,
                "operation": operation,
                "account": str(account),
                "amount": str(amount),
                "reason": reason,
                "detail": str(e),
                "depth": self._depth,
            }, separators=(",", ":")))
            raise
        finally:
            self._depth -= 1
        if self._depth == 0:
            self._commit()

    def _emit(self, event: VaultEvent) -> None:
        self._pending.append(event)

    def _commit(self) -> None:
        committed, self._pending = self._pending, []
        set_total_deposits(self.name, self.state.total_deposits)
        for event in committed:
            self.events.append(event)
            if isinstance(event, Deposit):
                self._deposits_counter.labels(self.name).inc()
            else:
                self._withdrawals_counter.labels(self.name).inc()
            self._sequence += 1
            env = EventEnvelope(
                correlation_id=f"{self.name}:{event.account}",
                sequence=self._sequence,
                event=event,
            )
            try:
                self._publish(env)
            except Exception:
                # The operation is already committed; delivery is the publisher's concern.
                log.exception("failed to publish %s event #%d", event.event_type, self._sequence)

    # ---- export ----

    def write_parquet(self, base_dir: str = "data") -> None:
        os.makedirs(base_dir, exist_ok=True)
        # wei overflows int64, so amounts are written as decimal strings
        balances_df = pd.DataFrame(
            [{"account": acct, "balance": str(bal)} for acct, bal in sorted(self.state.balances.items())],
            columns=["account", "balance"],
        )
        events_df = pd.DataFrame(
            [
                {
                    "ts": ev.ts,
                    "event_type": ev.event_type,
                    "account": ev.account,
                    "amount": str(ev.amount),
                    "balance": str(ev.balance),
                }
                for ev in self.events
            ],
            columns=["ts", "event_type", "account", "amount", "balance"],
        )
        balances_df.to_parquet(os.path.join(base_dir, "balances.parquet"))
        events_df.to_parquet(os.path.join(base_dir, "events.parquet"))


def _now_ms() -> int:
    return int(time.time() * 1000)
