from __future__ import annotations


class ContractConfigError(ValueError):
    """Raised when a builder is configured in a way that cannot produce a valid contract."""
