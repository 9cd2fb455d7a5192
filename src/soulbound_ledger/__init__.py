"""Soulbound multi-token ledger with issuer claim-mints, reward mints and gated transfers."""

__version__ = "1.0.0"
