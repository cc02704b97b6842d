"""Application layer for reconciliation."""
