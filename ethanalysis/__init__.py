"""Beacon chain analysis: slots, beacon node access, stored states, blocks, balances and issuance."""

__version__ = "0.1.0"