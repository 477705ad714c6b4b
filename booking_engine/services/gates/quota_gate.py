# booking_engine/services/gates/quota_gate.py
"""Subscription quota seam consulted before a booking transaction starts"""
from datetime import datetime
from uuid import UUID


class QuotaGate:

    def may_accept_appointment(self, business_id: UUID, requested_start: datetime) -> bool:
        raise NotImplementedError


class AllowAllQuotaGate(QuotaGate):
    """Default gate: plan limits are enforced elsewhere"""

    def may_accept_appointment(self, business_id: UUID, requested_start: datetime) -> bool:
        return True
