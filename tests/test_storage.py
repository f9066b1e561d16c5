import sqlite3

import pandas as pd
import pytest

from kipubank.ledger import VaultLedger, WalletBook
from kipubank.storage.sqlite_store import SQLiteStore
from kipubank.units import parse_ether


def _ledger():
    wallets = WalletBook({"0x1": parse_ether("900"), "0x2": parse_ether("5")})
    ledger = VaultLedger(parse_ether("1"), transport=wallets, publish=lambda env: None)
    ledger.deposit("0x1", parse_ether("900"))
    ledger.deposit("0x2", parse_ether("0.5"))
    ledger.withdraw("0x2", parse_ether("0.25"))
    return ledger


def test_sqlite_store_save_and_load(tmp_path):
    store = SQLiteStore(str(tmp_path / "db" / "vault.sqlite"))
    assert store.load() is None
    ledger = _ledger()
    store.save(ledger)

    config, state = store.load()
    assert config == ledger.config
    assert state.balances == {"0x1": parse_ether("900"), "0x2": parse_ether("0.25")}
    assert state.total_deposits == ledger.total_deposits
    assert (state.deposit_count, state.withdrawal_count) == (2, 1)

    restored = VaultLedger(config.withdrawal_limit, config.bank_cap, state=state, publish=lambda env: None)
    assert restored.transport.held == restored.total_deposits
    restored.withdraw("0x2", parse_ether("0.25"))
    assert restored.get_vault_balance("0x2") == 0


def test_sqlite_store_rejects_inconsistent_snapshot(tmp_path):
    path = str(tmp_path / "vault.sqlite")
    store = SQLiteStore(path)
    store.save(_ledger())
    with sqlite3.connect(path) as con:
        con.execute("UPDATE vault_balances SET balance = '1' WHERE account = '0x1'")
    with pytest.raises(ValueError, match="sum of balances"):
        store.load()


def test_write_parquet(tmp_path):
    pytest.importorskip("pyarrow")
    ledger = _ledger()
    ledger.write_parquet(str(tmp_path))
    balances = pd.read_parquet(tmp_path / "balances.parquet")
    events = pd.read_parquet(tmp_path / "events.parquet")
    assert list(balances["account"]) == ["0x1", "0x2"]
    assert balances.loc[balances["account"] == "0x1", "balance"].iloc[0] == str(parse_ether("900"))
    assert list(events["event_type"]) == ["deposit", "deposit", "withdrawal"]


def test_sqlite_store_keeps_event_sequence(tmp_path):
    store = SQLiteStore(str(tmp_path / "vault.sqlite"))
    assert store.load_sequence() == 0
    ledger = _ledger()
    assert ledger.sequence == 3
    store.save(ledger)
    assert store.load_sequence() == 3
