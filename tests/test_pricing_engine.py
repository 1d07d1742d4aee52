"""
Pricing engine tests: subtotal, additive discounts and totals.
"""
import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cafe_pos.engine import Cart, ItemKind, LineItem, Offer, OfferScope, PricingEngine


def make_offer(offer_id, percent, scope=OfferScope.ALL):
    return Offer(offer_id=offer_id, name=f"Offer {offer_id}", discount_percent=Decimal(percent), scope=scope)


@pytest.fixture(scope="function")
def engine():
    return PricingEngine()


def test_empty_cart_prices_to_zero(engine):
    cart = Cart()
    assert engine.compute_subtotal(cart) == 0
    assert engine.compute_discount(cart, []) == 0
    assert engine.compute_total(cart, []) == 0


def test_subtotal_identical_lines(engine):
    """n rows of the same price and quantity q sum to n x price x q."""
    price, qty, n = Decimal('3.75'), 3, 4
    cart = Cart(items=[
        LineItem(item_id=str(i), kind=ItemKind.PRODUCT, unit_price=price, quantity=qty)
        for i in range(n)
    ])
    assert engine.compute_subtotal(cart) == n * price * qty


def test_discounts_are_additive_not_compounded(engine):
    """Quick discount plus a 10% offer on $100 is $20, not $19."""
    cart = Cart(
        items=[LineItem('1', ItemKind.PRODUCT, Decimal('100.00'))],
        selected_offer_ids=['happy'],
        quick_discount=True,
    )
    offers = [make_offer('happy', 10)]

    assert engine.compute_discount(cart, offers) == Decimal('20')
    assert engine.compute_total(cart, offers) == Decimal('80')


def test_total_is_subtotal_minus_discount(engine):
    cart = Cart(
        items=[
            LineItem('1', ItemKind.PRODUCT, Decimal('4.50'), 2),
            LineItem('2', ItemKind.PRODUCT, Decimal('3.00'), 1),
        ],
        quick_discount=True,
    )
    subtotal = engine.compute_subtotal(cart)
    discount = engine.compute_discount(cart, [])

    assert subtotal == Decimal('12.00')
    assert engine.compute_total(cart, []) == subtotal - discount


def test_end_to_end_cafe_order(engine):
    """Cappuccino x2 + Latte, quick discount and a 15% offer."""
    cart = Cart(
        items=[
            LineItem('1', ItemKind.PRODUCT, Decimal('4.50'), 2, name='Cappuccino'),
            LineItem('3', ItemKind.PRODUCT, Decimal('4.80'), 1, name='Latte'),
        ],
        selected_offer_ids=['student'],
        quick_discount=True,
    )
    offers = [make_offer('student', 15)]

    result = engine.price(cart, offers)

    assert result.subtotal == Decimal('13.80')
    assert result.contributions['quick_discount'] == Decimal('1.38')
    assert result.contributions['offer:student'] == Decimal('2.07')
    assert result.discount_total == Decimal('3.45')
    assert result.total == Decimal('10.35')
    assert "Total" in result.get_trace_text()


def test_quick_discount_argument_overrides_cart_flag(engine):
    cart = Cart(items=[LineItem('1', ItemKind.PRODUCT, Decimal('50'))], quick_discount=False)
    assert engine.compute_discount(cart, [], quick_discount_enabled=True) == Decimal('5')
    assert engine.compute_discount(cart, []) == 0


def test_unknown_selected_offer_is_ignored(engine):
    cart = Cart(items=[LineItem('1', ItemKind.PRODUCT, Decimal('10'))], selected_offer_ids=['gone'])
    assert engine.compute_discount(cart, [make_offer('other', 50)]) == 0


def test_unselected_offers_do_not_apply(engine):
    cart = Cart(items=[LineItem('1', ItemKind.PRODUCT, Decimal('10'))])
    assert engine.compute_discount(cart, [make_offer('a', 50)]) == 0


def test_legacy_mode_allows_negative_total(engine):
    """Stacked offers can exceed the subtotal; the total goes negative."""
    cart = Cart(
        items=[LineItem('1', ItemKind.PRODUCT, Decimal('10'))],
        selected_offer_ids=['a', 'b', 'c'],
    )
    offers = [make_offer('a', 50), make_offer('b', 50), make_offer('c', 50)]

    assert engine.compute_discount(cart, offers) == Decimal('15')
    assert engine.compute_total(cart, offers) == Decimal('-5')


def test_clamped_mode_floors_total():
    engine = PricingEngine(clamp_total=True)
    cart = Cart(
        items=[LineItem('1', ItemKind.PRODUCT, Decimal('10'))],
        selected_offer_ids=['a', 'b', 'c'],
    )
    offers = [make_offer('a', 50), make_offer('b', 50), make_offer('c', 50)]

    result = engine.price(cart, offers)

    assert result.discount_total == Decimal('10')
    assert result.total == Decimal('0')
    assert any(step.step == "Clamp" for step in result.trace)


def test_scope_is_not_enforced_by_default(engine):
    cart = Cart(
        items=[
            LineItem('1', ItemKind.PRODUCT, Decimal('10')),
            LineItem('1', ItemKind.COMBO, Decimal('20')),
        ],
        selected_offer_ids=['p'],
    )
    offers = [make_offer('p', 10, OfferScope.PRODUCTS)]
    assert engine.compute_discount(cart, offers) == Decimal('3')


def test_scope_enforced_when_enabled():
    engine = PricingEngine(enforce_offer_scope=True)
    cart = Cart(
        items=[
            LineItem('1', ItemKind.PRODUCT, Decimal('10')),
            LineItem('1', ItemKind.COMBO, Decimal('20')),
        ],
        selected_offer_ids=['p', 'c'],
    )
    offers = [make_offer('p', 10, OfferScope.PRODUCTS), make_offer('c', 10, OfferScope.COMBOS)]
    assert engine.compute_discount(cart, offers) == Decimal('3')
    assert engine.discount_contributions(cart, offers) == {
        'offer:p': Decimal('1'),
        'offer:c': Decimal('2'),
    }


def test_custom_quick_discount_percent():
    engine = PricingEngine(quick_discount_percent=Decimal('5'))
    cart = Cart(items=[LineItem('1', ItemKind.PRODUCT, Decimal('40'))], quick_discount=True)
    assert engine.compute_discount(cart, []) == Decimal('2')
