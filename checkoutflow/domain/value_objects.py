"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
Each one validates itself on construction; a buyer resubmitting a step
gets a fresh instance, never a mutated one.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID, uuid4

from checkoutflow.domain.base import ValueObject
from checkoutflow.domain.exceptions import (
    CurrencyMismatchError,
    InvalidQuantityError,
    NegativeMoneyError,
)


def _require(value: str | None, message: str) -> None:
    if value is None or not value.strip():
        raise ValueError(message)


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class UuidIdentifier(ValueObject):
    """Base for strongly-typed UUID identifiers.

    Using typed IDs prevents accidentally mixing up a cart id with a
    session id even though both are UUIDs underneath.
    """

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new random identifier."""
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Create an identifier from its string representation.

        Raises:
            ValueError: If ``value`` is not a valid UUID.
        """
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class CheckoutSessionId(UuidIdentifier):
    """Identifier of a checkout session, generated when the session starts."""


@dataclass(frozen=True)
class CartId(UuidIdentifier):
    """Identifier of the cart a session originated from."""


@dataclass(frozen=True)
class CheckoutLineItemId(UuidIdentifier):
    """Identifier of a line item captured at session start."""


@dataclass(frozen=True)
class StringIdentifier(ValueObject):
    """Base for identifiers owned by other contexts (plain strings)."""

    value: str

    def __post_init__(self) -> None:
        _require(self.value, f"{type(self).__name__} cannot be empty")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CustomerId(StringIdentifier):
    """Customer identifier; guests get one too."""


@dataclass(frozen=True)
class ProductId(StringIdentifier):
    """Product identifier from the product catalogue."""


@dataclass(frozen=True)
class PaymentProviderId(StringIdentifier):
    """Identifier of a payment provider (e.g. 'mock', 'paypal')."""


# ============================================================================
# Money Value Object
# ============================================================================


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents monetary value with currency.

    Money is stored in the smallest currency unit (cents) to avoid
    floating-point precision issues.

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents).
        currency: ISO 4217 currency code (e.g., 'EUR', 'USD').
    """

    amount_cents: int
    currency: str = "EUR"

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise NegativeMoneyError(self.amount_cents)
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = "EUR") -> Self:
        """Create zero amount money."""
        return cls(amount_cents=0, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Decimal | str, currency: str = "EUR") -> Self:
        """Create money from an amount in major units.

        Args:
            amount: Decimal (or decimal string) amount, e.g. ``"49.99"``.
            currency: Currency code.

        Returns:
            Money instance rounded half-up to whole cents.
        """
        cents = int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return cls(amount_cents=cents, currency=currency)

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units."""
        return Decimal(self.amount_cents) / 100

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_cents=self.amount_cents + other.amount_cents, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        """Subtract money amounts.

        Raises:
            CurrencyMismatchError: If currencies don't match.
            NegativeMoneyError: If result would be negative.
        """
        self._check_currency(other)
        return Money(amount_cents=self.amount_cents - other.amount_cents, currency=self.currency)

    def __mul__(self, quantity: int) -> "Money":
        return Money(amount_cents=self.amount_cents * quantity, currency=self.currency)

    def __rmul__(self, quantity: int) -> "Money":
        return self.__mul__(quantity)

    def __str__(self) -> str:
        symbol = {"USD": "$", "EUR": "€", "GBP": "£"}.get(self.currency, "")
        return f"{symbol}{self.to_decimal():.2f} {self.currency}"

    def is_zero(self) -> bool:
        return self.amount_cents == 0


# ============================================================================
# Buyer Information
# ============================================================================


@dataclass(frozen=True)
class BuyerInfo(ValueObject):
    """Buyer contact information collected in the first checkout step.

    Attributes:
        email: Contact e-mail address.
        first_name: Buyer first name.
        last_name: Buyer last name.
        phone: Contact phone number.
    """

    email: str
    first_name: str
    last_name: str
    phone: str

    def __post_init__(self) -> None:
        _require(self.email, "Email cannot be blank")
        if "@" not in self.email:
            raise ValueError("Email must be a valid email address")
        _require(self.first_name, "First name cannot be blank")
        _require(self.last_name, "Last name cannot be blank")
        _require(self.phone, "Phone cannot be blank")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# ============================================================================
# Delivery
# ============================================================================


@dataclass(frozen=True)
class DeliveryAddress(ValueObject):
    """Address the order is shipped to.

    Attributes:
        street: Primary address line.
        city: City name.
        postal_code: Postal/ZIP code.
        country: ISO 3166-1 alpha-2 country code.
        street_line2: Secondary address line (optional).
        state: State/province/region (optional).
    """

    street: str
    city: str
    postal_code: str
    country: str
    street_line2: str | None = None
    state: str | None = None

    def __post_init__(self) -> None:
        _require(self.street, "Street cannot be blank")
        _require(self.city, "City cannot be blank")
        _require(self.postal_code, "Postal code cannot be blank")
        _require(self.country, "Country cannot be blank")
        object.__setattr__(self, "country", self.country.strip().upper())

    def format_single_line(self) -> str:
        """Format address as single line, e.g. for confirmation mails."""
        parts = [self.street]
        if self.street_line2 and self.street_line2.strip():
            parts.append(self.street_line2)
        parts.append(f"{self.postal_code} {self.city}")
        if self.state and self.state.strip():
            parts.append(self.state)
        parts.append(self.country)
        return ", ".join(parts)


@dataclass(frozen=True)
class ShippingOption(ValueObject):
    """A shipping method chosen during the delivery step.

    Attributes:
        id: Stable option identifier (e.g. 'standard').
        name: Display name.
        estimated_delivery: Human-readable delivery estimate.
        cost: Shipping cost added to the checkout totals.
    """

    id: str
    name: str
    estimated_delivery: str
    cost: Money

    def __post_init__(self) -> None:
        _require(self.id, "Shipping option id cannot be blank")
        _require(self.name, "Shipping option name cannot be blank")
        _require(self.estimated_delivery, "Estimated delivery cannot be blank")

    def is_free(self) -> bool:
        return self.cost.is_zero()


# ============================================================================
# Payment
# ============================================================================


@dataclass(frozen=True)
class PaymentSelection(ValueObject):
    """The payment provider chosen by the buyer.

    No payment is executed here. ``provider_reference`` is the opaque
    authorization token a provider handed back, if any.
    """

    provider_id: PaymentProviderId
    provider_reference: str | None = None

    def has_reference(self) -> bool:
        return bool(self.provider_reference and self.provider_reference.strip())


# ============================================================================
# Line Items & Totals
# ============================================================================


@dataclass(frozen=True)
class CheckoutLineItem(ValueObject):
    """A cart line captured when the checkout session starts.

    Attributes:
        id: Line item identifier.
        product_id: Product being bought.
        product_name: Product name at capture time.
        unit_price: Unit price at capture time.
        quantity: Number of units requested.
    """

    id: CheckoutLineItemId
    product_id: ProductId
    product_name: str
    unit_price: Money
    quantity: int

    def __post_init__(self) -> None:
        _require(self.product_name, "Product name cannot be blank")
        if self.quantity <= 0:
            raise InvalidQuantityError(self.quantity)

    @classmethod
    def capture(
        cls,
        product_id: ProductId,
        product_name: str,
        unit_price: Money,
        quantity: int,
    ) -> Self:
        """Capture a line item with a freshly generated id."""
        return cls(
            id=CheckoutLineItemId.generate(),
            product_id=product_id,
            product_name=product_name,
            unit_price=unit_price,
            quantity=quantity,
        )

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CheckoutTotals(ValueObject):
    """Derived monetary totals of a checkout session.

    Never mutated in place; every change produces a new instance via
    :meth:`calculate`, :meth:`with_shipping` or :meth:`with_subtotal`.
    """

    subtotal: Money
    shipping: Money
    tax: Money
    total: Money

    def __post_init__(self) -> None:
        expected = self.subtotal + self.shipping + self.tax
        if expected != self.total:
            raise ValueError(f"Total {self.total} does not match its components ({expected})")

    @classmethod
    def calculate(cls, subtotal: Money, shipping: Money, tax: Money) -> Self:
        return cls(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=subtotal + shipping + tax,
        )

    @classmethod
    def from_subtotal(cls, subtotal: Money) -> Self:
        """Totals before any shipping or tax is known."""
        zero = Money.zero(subtotal.currency)
        return cls.calculate(subtotal, zero, zero)

    @property
    def currency(self) -> str:
        return self.total.currency

    def with_shipping(self, shipping: Money) -> "CheckoutTotals":
        return CheckoutTotals.calculate(self.subtotal, shipping, self.tax)

    def with_subtotal(self, subtotal: Money) -> "CheckoutTotals":
        return CheckoutTotals.calculate(subtotal, self.shipping, self.tax)
