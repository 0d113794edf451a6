"""Checkout package: draft, strategies, and the orchestrator."""
from .models import CheckoutDraft, CheckoutStep, STEP_ORDER
from .orchestrator import CheckoutOrchestrator
from .strategies import (
    ConfirmationRequiredStrategy,
    DirectSettleStrategy,
    PaymentStrategy,
    get_strategy,
)

__all__ = [
    "CheckoutDraft",
    "CheckoutStep",
    "STEP_ORDER",
    "CheckoutOrchestrator",
    "PaymentStrategy",
    "ConfirmationRequiredStrategy",
    "DirectSettleStrategy",
    "get_strategy",
]
