"""Long-lived discovery state: readiness signal and pending subscriptions"""
from .readiness import ReadinessGate
from .subscriptions import SubscriptionRegistry

__all__ = ["ReadinessGate", "SubscriptionRegistry"]
