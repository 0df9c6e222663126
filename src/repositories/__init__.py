"""Repository layer package."""

from src.repositories.business_repo import BusinessRepo
from src.repositories.catalog_repo import CatalogRepo
from src.repositories.commission_repo import CommissionRepo
from src.repositories.module_grant_repo import ModuleGrantRepo
from src.repositories.payment_reference_repo import PaymentReferenceRepo
from src.repositories.promo_code_repo import PromoCodeRepo
from src.repositories.subscription_repo import SubscriptionRepo

__all__ = [
    "BusinessRepo",
    "CatalogRepo",
    "CommissionRepo",
    "ModuleGrantRepo",
    "PaymentReferenceRepo",
    "PromoCodeRepo",
    "SubscriptionRepo",
]
