"""Tests for domain value objects."""

from decimal import Decimal

import pytest

from checkoutflow.domain import (
    BuyerInfo,
    CartId,
    CheckoutLineItem,
    CheckoutSessionId,
    CheckoutTotals,
    CustomerId,
    DeliveryAddress,
    Money,
    PaymentProviderId,
    PaymentSelection,
    ProductId,
    ShippingOption,
)
from checkoutflow.domain.exceptions import (
    CurrencyMismatchError,
    InvalidQuantityError,
    NegativeMoneyError,
)


class TestMoney:
    """Tests for Money value object."""

    def test_create_from_cents(self) -> None:
        """Money can be created from cents."""
        money = Money(amount_cents=1999, currency="EUR")
        assert money.amount_cents == 1999
        assert money.currency == "EUR"

    def test_create_from_decimal_string(self) -> None:
        """Money can be created from a decimal string."""
        assert Money.from_decimal("49.99").amount_cents == 4999

    def test_from_decimal_rounds_half_up(self) -> None:
        """Sub-cent amounts are rounded half-up."""
        assert Money.from_decimal(Decimal("0.005")).amount_cents == 1

    def test_to_decimal(self) -> None:
        """Money can be converted to Decimal."""
        assert Money(amount_cents=1999).to_decimal() == Decimal("19.99")

    def test_currency_is_uppercased(self) -> None:
        """Currency codes are normalised to upper case."""
        assert Money(amount_cents=1, currency="usd").currency == "USD"

    def test_negative_amount_rejected(self) -> None:
        """Negative money raises NegativeMoneyError."""
        with pytest.raises(NegativeMoneyError):
            Money(amount_cents=-1)

    def test_add(self) -> None:
        """Money amounts can be added."""
        assert Money(amount_cents=1000) + Money(amount_cents=550) == Money(amount_cents=1550)

    def test_add_different_currencies_fails(self) -> None:
        """Adding different currencies raises CurrencyMismatchError."""
        with pytest.raises(CurrencyMismatchError):
            Money(amount_cents=100, currency="EUR") + Money(amount_cents=100, currency="USD")

    def test_subtract_below_zero_fails(self) -> None:
        """Subtraction may not produce a negative amount."""
        with pytest.raises(NegativeMoneyError):
            Money(amount_cents=100) - Money(amount_cents=200)

    def test_multiply(self) -> None:
        """Money can be multiplied by a quantity from either side."""
        assert Money(amount_cents=1499) * 2 == Money(amount_cents=2998)
        assert 3 * Money(amount_cents=100) == Money(amount_cents=300)

    def test_str(self) -> None:
        """String form shows symbol, amount and currency."""
        assert str(Money(amount_cents=5997)) == "€59.97 EUR"


class TestIdentifiers:
    """Tests for typed identifiers."""

    def test_generated_ids_are_unique(self) -> None:
        assert CheckoutSessionId.generate() != CheckoutSessionId.generate()

    def test_round_trip_through_string(self) -> None:
        cart_id = CartId.generate()
        assert CartId.from_string(str(cart_id)) == cart_id

    def test_invalid_uuid_rejected(self) -> None:
        with pytest.raises(ValueError):
            CheckoutSessionId.from_string("not-a-uuid")

    def test_ids_of_different_types_are_not_equal(self) -> None:
        """A cart id never equals a session id with the same UUID."""
        cart_id = CartId.generate()
        assert CheckoutSessionId(value=cart_id.value) != cart_id

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_string_ids_rejected(self, value: str) -> None:
        with pytest.raises(ValueError):
            CustomerId(value)

    def test_string_id_str(self) -> None:
        assert str(ProductId("SKU-001")) == "SKU-001"


class TestBuyerInfo:
    """Tests for BuyerInfo value object."""

    def test_full_name(self, buyer_info: BuyerInfo) -> None:
        assert buyer_info.full_name == "Jane Doe"

    def test_email_must_contain_at_sign(self) -> None:
        with pytest.raises(ValueError, match="valid email"):
            BuyerInfo(email="jane.example.com", first_name="Jane", last_name="Doe", phone="1")

    @pytest.mark.parametrize("field", ["email", "first_name", "last_name", "phone"])
    def test_blank_fields_rejected(self, field: str) -> None:
        data = {
            "email": "jane@example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "phone": "12345",
        }
        data[field] = " "
        with pytest.raises(ValueError):
            BuyerInfo(**data)

    def test_is_immutable(self, buyer_info: BuyerInfo) -> None:
        with pytest.raises(AttributeError):
            buyer_info.email = "other@example.com"  # type: ignore[misc]


class TestDeliveryAddress:
    """Tests for DeliveryAddress value object."""

    def test_country_is_normalised(self, delivery_address: DeliveryAddress) -> None:
        assert delivery_address.country == "DE"

    def test_format_single_line(self) -> None:
        address = DeliveryAddress(
            street="1 Main St",
            street_line2="Apt 4",
            city="Springfield",
            state="IL",
            postal_code="62701",
            country="US",
        )
        assert address.format_single_line() == "1 Main St, Apt 4, 62701 Springfield, IL, US"

    def test_blank_city_rejected(self) -> None:
        with pytest.raises(ValueError, match="City"):
            DeliveryAddress(street="1 Main St", city="", postal_code="1", country="US")


class TestShippingAndPayment:
    """Tests for ShippingOption and PaymentSelection."""

    def test_free_shipping(self) -> None:
        option = ShippingOption(
            id="free", name="Free", estimated_delivery="5-7 days", cost=Money.zero()
        )
        assert option.is_free()

    def test_paid_shipping(self, standard_shipping: ShippingOption) -> None:
        assert not standard_shipping.is_free()

    def test_payment_reference(self) -> None:
        provider = PaymentProviderId("mock")
        assert PaymentSelection(provider_id=provider, provider_reference="ref").has_reference()
        assert not PaymentSelection(provider_id=provider).has_reference()
        assert not PaymentSelection(provider_id=provider, provider_reference=" ").has_reference()


class TestCheckoutLineItem:
    """Tests for CheckoutLineItem value object."""

    def test_line_total(self, line_items: list[CheckoutLineItem]) -> None:
        assert line_items[1].line_total == Money.from_decimal("29.98")

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity: int) -> None:
        with pytest.raises(InvalidQuantityError):
            CheckoutLineItem.capture(
                product_id=ProductId("SKU-001"),
                product_name="Widget",
                unit_price=Money(amount_cents=100),
                quantity=quantity,
            )

    def test_capture_generates_id(self, line_items: list[CheckoutLineItem]) -> None:
        assert line_items[0].id != line_items[1].id


class TestCheckoutTotals:
    """Tests for CheckoutTotals value object."""

    def test_from_subtotal(self) -> None:
        totals = CheckoutTotals.from_subtotal(Money(amount_cents=5000))
        assert totals.shipping.is_zero()
        assert totals.tax.is_zero()
        assert totals.total == Money(amount_cents=5000)

    def test_with_shipping_recomputes_total(self) -> None:
        totals = CheckoutTotals.from_subtotal(Money(amount_cents=5000))
        updated = totals.with_shipping(Money(amount_cents=500))
        assert updated.total == Money(amount_cents=5500)
        assert totals.total == Money(amount_cents=5000)

    def test_with_subtotal_keeps_shipping(self) -> None:
        totals = CheckoutTotals.from_subtotal(Money(amount_cents=5000)).with_shipping(
            Money(amount_cents=500)
        )
        assert totals.with_subtotal(Money(amount_cents=4000)).total == Money(amount_cents=4500)

    def test_inconsistent_total_rejected(self) -> None:
        zero = Money.zero()
        with pytest.raises(ValueError, match="does not match"):
            CheckoutTotals(
                subtotal=Money(amount_cents=100),
                shipping=zero,
                tax=zero,
                total=Money(amount_cents=99),
            )

    def test_mixed_currencies_rejected(self) -> None:
        totals = CheckoutTotals.from_subtotal(Money(amount_cents=100, currency="EUR"))
        with pytest.raises(CurrencyMismatchError):
            totals.with_shipping(Money(amount_cents=100, currency="USD"))
