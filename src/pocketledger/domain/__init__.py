"""Domain layer for pocketledger.

Services are exposed lazily so that low-level modules (utils, database) can
import ``pocketledger.domain.entities`` and ``pocketledger.domain.errors``
without pulling in the services that depend on them.
"""

_SERVICES = {
    "AccountService": "pocketledger.domain.account",
    "CategoryService": "pocketledger.domain.category",
    "TransactionService": "pocketledger.domain.transaction",
    "DebtService": "pocketledger.domain.debt",
    "SettlementService": "pocketledger.domain.settlement",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
