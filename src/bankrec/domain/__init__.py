"""Domain layer for bankrec application."""

import importlib

# Services are imported lazily: they depend on bankrec.database, which in
# turn imports bankrec.domain.entities.
_SERVICES = {
    "AccountService": "bankrec.domain.account",
    "LedgerService": "bankrec.domain.ledger",
    "RuleService": "bankrec.domain.rules",
    "PayeeAliasService": "bankrec.domain.payee_alias",
    "MatchingEngine": "bankrec.domain.matching",
    "LedgerCommit": "bankrec.domain.commit",
    "StatementImportService": "bankrec.domain.statement_import",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        module = importlib.import_module(_SERVICES[name])
        return getattr(module, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
