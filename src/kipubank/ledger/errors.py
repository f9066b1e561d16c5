"""Vault ledger errors.

Every failure leaves the ledger untouched; callers catch the specific class
(or `VaultError`) and decide whether to retry. `reason` is the short label
used for metrics and structured logs.
"""
from __future__ import annotations


class VaultError(Exception):
    reason = "vault_error"


class InvalidAmount(VaultError):
    """Zero, negative or non-integer amount."""

    reason = "invalid_amount"


class CapacityExceeded(VaultError):
    """Deposit would push total deposits above the bank cap."""

    reason = "bank_cap"


class LimitExceeded(VaultError):
    """Withdrawal amount above the per-transaction withdrawal limit."""

    reason = "withdrawal_limit"


class InsufficientFunds(VaultError):
    """Withdrawal amount above the account's vault balance."""

    reason = "insufficient_funds"


class TransferFailed(VaultError):
    """Value could not be moved between the vault and an external wallet."""

    reason = "transfer_failed"
