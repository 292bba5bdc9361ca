"""
Domain service interfaces.
"""

from sequestre.domain.services.i_ledger_transport import ILedgerTransport

__all__ = ["ILedgerTransport"]
