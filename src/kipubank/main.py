"""
Main entrypoint for kipubank.

What it does:
- Loads runtime settings from `config/config.yaml` and environment variables
  (`KIPUBANK_NETWORK`, `{NETWORK}_RPC_URL`, `PRIVATE_KEY`).
- Starts the Prometheus metrics server.
- Restores the vault from the SQLite snapshot at `settings.state_path`, or
  creates a fresh one with the configured withdrawal limit, and logs a
  deployment summary.
- With `VAULT_DEMO=1`, runs the quick interactions (deposit 0.1, withdraw
  0.05, read balance) against a funded demo wallet.
- Saves the snapshot and exits.

Where it is used:
- Invoked by `python -m kipubank.main` or the `kipubank` console script.
"""
import logging
import os
from typing import Optional

from kipubank.config.loader import Settings, load_settings
from kipubank.ledger import VaultError, VaultLedger, WalletBook
from kipubank.metrics.core import start_server_safe
from kipubank.storage.sqlite_store import SQLiteStore
from kipubank.units import format_ether, parse_ether

log = logging.getLogger("kipubank.main")

DEMO_ACCOUNT = "0xdemo"


def open_ledger(settings: Settings, store: SQLiteStore) -> VaultLedger:
    """Restore the vault from its snapshot or create a new one."""
    restored = store.load()
    if restored is None:
        log.info("No snapshot at %s; creating a new vault", store.path)
        return VaultLedger(settings.withdrawal_limit)
    config, state = restored
    if config.withdrawal_limit != settings.withdrawal_limit:
        # The limit is immutable once the vault exists.
        log.warning(
            "Configured withdrawal limit %s ETH differs from deployed %s ETH; keeping deployed value",
            settings.withdrawal_limit_eth,
            format_ether(config.withdrawal_limit),
        )
    sequence = store.load_sequence()
    log.info("Restored vault from %s (%d accounts, event sequence %d)", store.path, len(state.balances), sequence)
    return VaultLedger(config.withdrawal_limit, config.bank_cap, state=state, sequence=sequence)


def log_summary(settings: Settings, ledger: VaultLedger) -> None:
    log.info("=" * 60)
    log.info("DEPLOYMENT SUMMARY")
    log.info("Contract Name:     %s", ledger.name)
    log.info("Network:           %s (chain id %d)", settings.network, settings.chain_id)
    if settings.rpc_url:
        log.info("RPC URL:           %s", settings.rpc_url)
    log.info("Withdrawal Limit:  %s ETH", format_ether(ledger.WITHDRAWAL_LIMIT))
    log.info("Bank Cap:          %s ETH", format_ether(ledger.BANK_CAP))
    log.info("Total Deposits:    %s ETH", format_ether(ledger.total_deposits))
    log.info("Deposits/Withdrawals: %d/%d", ledger.deposit_count, ledger.withdrawal_count)
    log.info("=" * 60)
    if not settings.is_local and not settings.etherscan_api_key:
        log.warning("ETHERSCAN_API_KEY not set; explorer verification unavailable for %s", settings.network)


def run_demo(ledger: VaultLedger, account: str = DEMO_ACCOUNT) -> Optional[int]:
    """Deposit 0.1, withdraw 0.05 and return the resulting vault balance."""
    ledger.transport.fund(account, parse_ether("0.1"))
    try:
        ledger.deposit(account, parse_ether("0.1"))
        ledger.withdraw(account, parse_ether("0.05"))
    except VaultError as e:
        log.error("Demo interaction reverted (%s): %s", e.reason, e)
        return None
    balance = ledger.get_my_balance(account)
    log.info("Demo balance for %s: %s ETH", account, format_ether(balance))
    return balance


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(os.getenv("KIPUBANK_CONFIG", "config/config.yaml"))
    log.info(f"Network: {settings.network}, chain id: {settings.chain_id}")

    start_server_safe(int(os.getenv("PROMETHEUS_PORT", "8000")))

    store = SQLiteStore(settings.state_path)
    ledger = open_ledger(settings, store)
    log_summary(settings, ledger)

    if os.getenv("VAULT_DEMO", "0") == "1":
        run_demo(ledger)

    store.save(ledger)
    log.info("Snapshot saved to %s", store.path)


if __name__ == "__main__":
    main()
