"""API module for Ledger Cover Studio. The application lives in `main`."""
