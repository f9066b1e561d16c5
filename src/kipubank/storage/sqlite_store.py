from __future__ import annotations

import os
import sqlite3
from typing import Optional, Tuple

from ..ledger.model import LedgerState, VaultConfig
from ..ledger.vault import VaultLedger


# Amounts are stored as TEXT: wei values overflow SQLite's 64-bit INTEGER.
DDL = """
CREATE TABLE IF NOT EXISTS vault_meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS vault_balances (
  account TEXT PRIMARY KEY,
  balance TEXT NOT NULL
);
"""

_META_KEYS = ("withdrawal_limit", "bank_cap", "total_deposits", "deposit_count", "withdrawal_count")


class SQLiteStore:
    """Snapshot store for a single vault's configuration, counters and balances."""

    def __init__(self, path: str = "data/vault.sqlite"):
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.path = path
        with sqlite3.connect(self.path) as con:
            con.executescript(DDL)

    def save(self, ledger: VaultLedger) -> None:
        """Replace the stored snapshot with the ledger's committed state."""
        state = ledger.state
        meta = {
            "withdrawal_limit": ledger.config.withdrawal_limit,
            "bank_cap": ledger.config.bank_cap,
            "total_deposits": state.total_deposits,
            "deposit_count": state.deposit_count,
            "withdrawal_count": state.withdrawal_count,
            "sequence": ledger.sequence,
        }
        with sqlite3.connect(self.path) as con:
            con.execute("DELETE FROM vault_meta")
            con.execute("DELETE FROM vault_balances")
            con.executemany(
                "INSERT INTO vault_meta(key, value) VALUES (?, ?)",
                [(k, str(v)) for k, v in meta.items()],
            )
            con.executemany(
                "INSERT INTO vault_balances(account, balance) VALUES (?, ?)",
                [(acct, str(bal)) for acct, bal in state.balances.items()],
            )

    def load(self) -> Optional[Tuple[VaultConfig, LedgerState]]:
        """Return the stored (config, state), or None if nothing was saved yet."""
        with sqlite3.connect(self.path) as con:
            meta = dict(con.execute("SELECT key, value FROM vault_meta").fetchall())
            rows = con.execute("SELECT account, balance FROM vault_balances").fetchall()
        if not meta:
            return None
        missing = [k for k in _META_KEYS if k not in meta]
        if missing:
            raise ValueError(f"incomplete vault snapshot in {self.path}: missing {missing}")
        config = VaultConfig(withdrawal_limit=int(meta["withdrawal_limit"]), bank_cap=int(meta["bank_cap"]))
        state = LedgerState(
            balances={acct: int(bal) for acct, bal in rows},
            total_deposits=int(meta["total_deposits"]),
            deposit_count=int(meta["deposit_count"]),
            withdrawal_count=int(meta["withdrawal_count"]),
        )
        state.check_invariants(config)
        return config, state

    def load_sequence(self) -> int:
        """Return the last published event sequence, 0 if none was saved."""
        with sqlite3.connect(self.path) as con:
            row = con.execute("SELECT value FROM vault_meta WHERE key = ?", ("sequence",)).fetchone()
        return int(row[0]) if row else 0
