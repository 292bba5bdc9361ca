"""
Sequestre - client-side orchestrator for the Solana escrow program.

Derives program addresses, encodes escrow records and instructions,
validates escrow state and submits lifecycle transactions.
"""

__version__ = "0.1.0"
