"""travelledger: bank reconciliation for travel agency ledgers."""

__version__ = "0.3.0"
