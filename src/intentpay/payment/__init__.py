"""Payment orchestration."""

from intentpay.payment.orchestrator import PaymentOrchestrator

__all__ = ["PaymentOrchestrator"]
