"""Payment ledger engine for apartment fee collection."""

__version__ = "0.1.0"
