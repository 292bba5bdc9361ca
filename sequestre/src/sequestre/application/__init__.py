"""
Application layer: validation and transaction orchestration.
"""

from sequestre.application.dto import (
    CancelPaymentInput,
    CancelPaymentOutput,
    ClosePaymentInput,
    InitializePaymentInput,
    InitializePaymentOutput,
    SettleAndTransferInput,
    SettlePaymentInput,
    SettlePaymentOutput,
)
from sequestre.application.escrow_state_validator import EscrowStateValidator
from sequestre.application.transaction_orchestrator import TransactionOrchestrator

__all__ = [
    "EscrowStateValidator",
    "TransactionOrchestrator",
    "InitializePaymentInput",
    "InitializePaymentOutput",
    "SettlePaymentInput",
    "SettleAndTransferInput",
    "SettlePaymentOutput",
    "CancelPaymentInput",
    "CancelPaymentOutput",
    "ClosePaymentInput",
]
