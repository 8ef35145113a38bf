"""Shipping options and payment providers offered during checkout."""

from collections.abc import Iterable
from dataclasses import dataclass

from checkoutflow.domain.exceptions import (
    PaymentProviderUnavailableError,
    UnknownShippingOptionError,
)
from checkoutflow.domain.value_objects import Money, PaymentProviderId, ShippingOption


class ShippingOptionCatalog:
    """Fixed set of shipping options in one currency."""

    def __init__(self, options: Iterable[ShippingOption]) -> None:
        self._options = {option.id: option for option in options}

    @classmethod
    def default(cls, currency: str = "EUR") -> "ShippingOptionCatalog":
        """Standard, express, overnight and free shipping."""
        return cls(
            [
                ShippingOption(
                    id="standard",
                    name="Standard Shipping",
                    estimated_delivery="3-5 business days",
                    cost=Money.from_decimal("4.99", currency),
                ),
                ShippingOption(
                    id="express",
                    name="Express Shipping",
                    estimated_delivery="1-2 business days",
                    cost=Money.from_decimal("9.99", currency),
                ),
                ShippingOption(
                    id="overnight",
                    name="Overnight Shipping",
                    estimated_delivery="Next business day",
                    cost=Money.from_decimal("19.99", currency),
                ),
                ShippingOption(
                    id="free",
                    name="Free Shipping",
                    estimated_delivery="5-7 business days",
                    cost=Money.zero(currency),
                ),
            ]
        )

    def list_options(self) -> list[ShippingOption]:
        return list(self._options.values())

    def get(self, option_id: str) -> ShippingOption:
        """Look up an option by id.

        Raises:
            UnknownShippingOptionError: If no such option is offered.
        """
        option = self._options.get(option_id)
        if option is None:
            raise UnknownShippingOptionError(option_id)
        return option


@dataclass(frozen=True)
class PaymentProvider:
    """A payment provider the buyer can select."""

    id: PaymentProviderId
    name: str
    available: bool = True


class PaymentProviderRegistry:
    """Registered payment providers keyed by id."""

    def __init__(self, providers: Iterable[PaymentProvider] = ()) -> None:
        self._providers: dict[PaymentProviderId, PaymentProvider] = {}
        for provider in providers:
            self.register(provider)

    @classmethod
    def default(cls) -> "PaymentProviderRegistry":
        return cls([PaymentProvider(id=PaymentProviderId("mock"), name="Mock Payment")])

    def register(self, provider: PaymentProvider) -> None:
        self._providers[provider.id] = provider

    def list_available(self) -> list[PaymentProvider]:
        return [p for p in self._providers.values() if p.available]

    def require_available(self, provider_id: PaymentProviderId) -> PaymentProvider:
        """Return the provider if it is registered and available.

        Raises:
            PaymentProviderUnavailableError: Otherwise.
        """
        provider = self._providers.get(provider_id)
        if provider is None or not provider.available:
            raise PaymentProviderUnavailableError(str(provider_id))
        return provider
