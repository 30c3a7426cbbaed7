"""HTTP API for the apartment ledger."""
