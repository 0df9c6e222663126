"""Database models package exports."""

from src.db.models.business import Business
from src.db.models.business_module import BusinessModuleGrant
from src.db.models.commission import CommissionPolicy, CommissionRecord
from src.db.models.module import Bundle, Module
from src.db.models.payment_reference import PaymentReference
from src.db.models.plan import Plan
from src.db.models.promo_code import PromoCode
from src.db.models.subscription import Subscription

__all__ = [
    "Bundle",
    "Business",
    "BusinessModuleGrant",
    "CommissionPolicy",
    "CommissionRecord",
    "Module",
    "PaymentReference",
    "Plan",
    "PromoCode",
    "Subscription",
]
