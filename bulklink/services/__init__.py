"""Ledger, issuance, redemption and ingestion services."""
