"""Ledger package.

Public API:
- VaultLedger: deposits, capped withdrawals and balance queries with atomic rollback.
- WalletBook: in-memory host wallets the vault pulls value from and sends value to.
"""

from .errors import (  # re-export
    CapacityExceeded,
    InsufficientFunds,
    InvalidAmount,
    LimitExceeded,
    TransferFailed,
    VaultError,
)
from .model import BANK_CAP, LedgerState, Receipt, VaultConfig
from .transport import WalletBook
from .vault import VaultLedger
