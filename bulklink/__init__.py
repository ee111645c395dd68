"""Bulk purchase patient-link service."""
