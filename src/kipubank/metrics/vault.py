from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

from ..units import to_ether_float

_deposits_total: Optional[Counter] = None
_withdrawals_total: Optional[Counter] = None
_reverts_total: Optional[Counter] = None
_total_deposits_gauge: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing_collector(name: str):
    # prometheus_client keeps no public lookup by name; Counter names lose
    # their "_total" suffix in the collector map.
    names = getattr(REGISTRY, "_names_to_collectors", {})
    return names.get(name) or names.get(name[: -len("_total")] if name.endswith("_total") else name)


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloaded or imported under two names)
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _existing_collector(name)
        return coll if coll is not None else _NoOp()


def get_deposits_total():
    global _deposits_total
    if _deposits_total is None:
        _deposits_total = _safe_counter("vault_deposits_total", "Successful vault deposits", ["vault"])
    return _deposits_total


def get_withdrawals_total():
    global _withdrawals_total
    if _withdrawals_total is None:
        _withdrawals_total = _safe_counter("vault_withdrawals_total", "Successful vault withdrawals", ["vault"])
    return _withdrawals_total


def get_reverts_total():
    """Counter: vault_reverts_total{vault,operation,reason}"""
    global _reverts_total
    if _reverts_total is None:
        _reverts_total = _safe_counter(
            "vault_reverts_total", "Vault operations rejected with no effect", ["vault", "operation", "reason"]
        )
    return _reverts_total


def get_total_deposits_gauge():
    """Gauge: aggregate vault balance in ether (lossy float view of wei)."""
    global _total_deposits_gauge
    if _total_deposits_gauge is None:
        _total_deposits_gauge = _safe_gauge("vault_total_deposits_eth", "Total deposits held in ether", ["vault"])
    return _total_deposits_gauge


def set_total_deposits(vault: str, total_wei: int) -> None:
    get_total_deposits_gauge().labels(vault=vault).set(to_ether_float(total_wei))
