"""
Cart mutation tests: merging, quantity changes and snapshots.
"""
import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cafe_pos.data.records import Combo, Product
from cafe_pos.engine import (
    Cart, InvalidInputError, ItemKind, LineItem,
    merge_or_add_line_item, remove_line_item, set_line_item_quantity, toggle_offer,
)


@pytest.fixture(scope="function")
def cappuccino():
    return Product('1', 'demo', 'Cappuccino', Decimal('4.50'))


@pytest.fixture(scope="function")
def combo():
    return Combo('1', 'demo', 'Coffee + Pastry', Decimal('7.50'), product_ids=['1'])


def test_adding_same_item_twice_merges(cappuccino):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    merge_or_add_line_item(cart, cappuccino)

    assert len(cart) == 1, "Same product should stay on one row"
    assert cart.items[0].quantity == 2
    assert cart.items[0].unit_price == Decimal('4.50')


def test_product_and_combo_with_same_id_are_separate_rows(cappuccino, combo):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    merge_or_add_line_item(cart, combo)

    assert len(cart) == 2
    assert cart.find('1', ItemKind.PRODUCT).name == 'Cappuccino'
    assert cart.find('1', ItemKind.COMBO).name == 'Coffee + Pastry'


def test_merge_from_mapping():
    cart = Cart()
    merge_or_add_line_item(cart, {'id': 7, 'name': 'Scone', 'price': '2.25'}, quantity=3)
    merge_or_add_line_item(cart, {'id': '7', 'name': 'Scone', 'price': '2.25'})

    row = cart.find('7', ItemKind.PRODUCT)
    assert row.quantity == 4
    assert row.extended_price == Decimal('9.00')


def test_merge_rejects_non_positive_quantity(cappuccino):
    cart = Cart()
    with pytest.raises(InvalidInputError):
        merge_or_add_line_item(cart, cappuccino, quantity=0)
    assert cart.is_empty


def test_set_quantity_to_zero_removes_row(cappuccino, combo):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino, quantity=2)
    merge_or_add_line_item(cart, combo)

    set_line_item_quantity(cart, '1', ItemKind.PRODUCT, 0)

    assert cart.find('1', ItemKind.PRODUCT) is None
    assert len(cart) == 1, "Other rows must be untouched"


def test_set_quantity_negative_removes_row(cappuccino):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    set_line_item_quantity(cart, '1', ItemKind.PRODUCT, -3)
    assert cart.is_empty


def test_set_quantity_replaces(cappuccino):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    set_line_item_quantity(cart, '1', ItemKind.PRODUCT, 5)
    assert cart.item_count == 5


def test_set_quantity_on_missing_row_raises():
    with pytest.raises(KeyError):
        set_line_item_quantity(Cart(), '99', ItemKind.PRODUCT, 2)


def test_set_quantity_must_be_integer(cappuccino):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    with pytest.raises(InvalidInputError):
        set_line_item_quantity(cart, '1', ItemKind.PRODUCT, 1.5)


def test_remove_missing_row_is_noop(cappuccino):
    cart = Cart()
    merge_or_add_line_item(cart, cappuccino)
    remove_line_item(cart, '1', ItemKind.COMBO)
    assert len(cart) == 1


def test_toggle_offer_twice_deselects():
    cart = Cart()
    toggle_offer(cart, '3')
    assert cart.selected_offer_ids == ['3']
    toggle_offer(cart, '3')
    assert cart.selected_offer_ids == []


def test_item_kind_is_structural():
    assert ItemKind.of({'id': 1, 'combo_items': []}) == ItemKind.COMBO
    assert ItemKind.of({'id': 1, 'price': 3}) == ItemKind.PRODUCT
    assert ItemKind.of(Combo('2', 'demo', 'Set', Decimal('5'))) == ItemKind.COMBO
    assert ItemKind.of(Product('2', 'demo', 'Tea', Decimal('2'))) == ItemKind.PRODUCT


def test_line_item_validation():
    with pytest.raises(InvalidInputError):
        LineItem('1', ItemKind.PRODUCT, Decimal('-1'))
    with pytest.raises(InvalidInputError):
        LineItem('1', ItemKind.PRODUCT, 'abc')
    with pytest.raises(InvalidInputError):
        LineItem('1', 'drink', Decimal('1'))


def test_snapshot_restores_cart(cappuccino, combo):
    cart = Cart(quick_discount=True, selected_offer_ids=['2'])
    merge_or_add_line_item(cart, cappuccino, quantity=2)
    merge_or_add_line_item(cart, combo)

    restored = Cart.from_snapshot(cart.snapshot())

    assert restored == cart


def test_snapshot_with_duplicate_rows_is_rejected():
    row = {'item_id': '1', 'kind': 'product', 'unit_price': '4.50', 'quantity': 1}
    with pytest.raises(InvalidInputError):
        Cart.from_snapshot({'items': [row, dict(row)]})


def test_line_item_adds_its_own_quantity():
    cart = Cart()
    merge_or_add_line_item(cart, LineItem('1', ItemKind.PRODUCT, Decimal('4.50'), quantity=3))
    merge_or_add_line_item(cart, LineItem('1', ItemKind.PRODUCT, Decimal('4.50'), quantity=2))

    assert cart.find('1', ItemKind.PRODUCT).quantity == 5


def test_explicit_quantity_overrides_line_item_quantity():
    cart = Cart()
    merge_or_add_line_item(cart, LineItem('1', ItemKind.PRODUCT, Decimal('4.50'), quantity=3), quantity=1)
    assert cart.item_count == 1
