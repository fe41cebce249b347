"""Ledger Cover Studio: cover-art generation, project claiming and billing API."""

__version__ = "1.0.0"
