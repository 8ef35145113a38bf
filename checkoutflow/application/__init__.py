"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from checkoutflow.application.checkout_service import (
    CheckoutResult,
    CheckoutService,
)
from checkoutflow.application.event_dispatcher import EventDispatcher
from checkoutflow.application.expiration_service import ExpirationSweeper
from checkoutflow.application.options import (
    PaymentProvider,
    PaymentProviderRegistry,
    ShippingOptionCatalog,
)
from checkoutflow.application.ports import ArticleDataPort, CheckoutSessionRepository

__all__ = [
    "ArticleDataPort",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutSessionRepository",
    "EventDispatcher",
    "ExpirationSweeper",
    "PaymentProvider",
    "PaymentProviderRegistry",
    "ShippingOptionCatalog",
]
