"""KipuBank: custodial vault ledger with a bank cap and a per-withdrawal limit."""

from .ledger import VaultLedger  # re-export

__all__ = ["VaultLedger"]
