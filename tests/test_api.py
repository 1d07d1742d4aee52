"""
HTTP API tests against an in-memory demo store.
"""
import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from fastapi.testclient import TestClient

from cafe_pos.api.main import create_app
from cafe_pos.config.settings import Settings
from cafe_pos.data import DemoDataService


STAFF = {'X-User-Id': 'staff-1', 'X-Role': 'staff'}


@pytest.fixture(scope="function")
def data_service():
    return DemoDataService()


@pytest.fixture(scope="function")
def client(tmp_path, data_service):
    app = create_app(Settings(project_root=tmp_path), data_service)
    return TestClient(app)


def offer_body(start_time, end_time, name='Lunch Deal'):
    return {
        'name': name,
        'discount_percent': 12,
        'start_date': '2025-01-01',
        'end_date': '2030-06-30',
        'start_time': start_time,
        'end_time': end_time,
    }


def test_root(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'online'


def test_menu_search(client):
    response = client.get('/menu', params={'search': 'break'})
    body = response.json()

    assert response.status_code == 200
    assert body['products'] == []
    assert [c['name'] for c in body['combos']] == ['Breakfast Set']


def test_quote_applies_additive_discounts(client):
    response = client.post('/pricing/quote', json={
        'items': [
            {'item_id': '1', 'unit_price': '4.50', 'quantity': 2, 'name': 'Cappuccino'},
            {'item_id': '3', 'unit_price': '4.80', 'name': 'Latte'},
        ],
        'selected_offer_ids': ['2'],
        'quick_discount': True,
    })
    body = response.json()

    assert response.status_code == 200
    assert Decimal(body['subtotal']) == Decimal('13.80')
    assert Decimal(body['discount_total']) == Decimal('3.45')
    assert Decimal(body['total']) == Decimal('10.35')
    assert 'Student Discount' in body['trace']


def test_quote_rejects_duplicate_lines(client):
    line = {'item_id': '1', 'unit_price': '4.50'}
    response = client.post('/pricing/quote', json={'items': [line, line]})
    assert response.status_code == 400


def test_quote_rejects_bad_price(client):
    response = client.post('/pricing/quote', json={'items': [{'item_id': '1', 'unit_price': '-2'}]})
    assert response.status_code == 400


def test_create_offer_and_conflict(client):
    created = client.post('/offers', json=offer_body('12:00', '14:00'))
    assert created.status_code == 200, created.text
    assert created.json()['discount_percent'] == '12'

    conflict = client.post('/offers', json=offer_body('16:00', '18:00', name='Evening'))
    assert conflict.status_code == 409
    assert len(client.get('/offers').json()) == 3


def test_staff_cannot_create_offer(client):
    response = client.post('/offers', json=offer_body('12:00', '14:00'), headers=STAFF)
    assert response.status_code == 403


def test_update_missing_offer_is_404(client):
    response = client.put('/offers/nope', json={'name': 'x'})
    assert response.status_code == 404


def test_validate_endpoint(client):
    response = client.post('/offers/validate', json=offer_body('10:00', '12:00'))
    body = response.json()

    assert response.status_code == 200
    assert not body['valid']
    assert body['conflicts'] == ['2']


def test_active_offers_at_moment(client):
    response = client.get('/offers/active', params={'at': '2025-06-01T16:00:00'})
    assert [o['name'] for o in response.json()] == ['Happy Hour']


def test_order_flow(client, data_service):
    sales_before = len(data_service.sales)

    added = client.post('/orders/cart/items', json={'item_id': '1', 'quantity': 2})
    assert added.status_code == 200
    assert added.json()['state'] == 'building'

    client.post('/orders/cart/items', json={'item_id': '2', 'kind': 'combo'})
    client.post('/orders/cart/quick-discount')
    cart = client.get('/orders/cart').json()
    assert Decimal(cart['pricing']['subtotal']) == Decimal('21.00')
    assert Decimal(cart['pricing']['total']) == Decimal('18.90')

    assert client.post('/orders/checkout').json()['state'] == 'checkout_pending'
    locked = client.post('/orders/cart/items', json={'item_id': '3'})
    assert locked.status_code == 409

    invalid = client.post('/orders/checkout/complete', json={'customer_name': '', 'customer_phone': ''})
    assert invalid.status_code == 400

    done = client.post('/orders/checkout/complete', json={
        'customer_name': 'Ana', 'customer_phone': '555-0101', 'payment_method': 'card',
    })
    assert done.status_code == 200, done.text
    assert Decimal(done.json()['total_amount']) == Decimal('18.90')
    assert done.json()['state'] == 'empty'
    assert len(data_service.sales) == sales_before + 1


def test_unknown_menu_item_is_404(client):
    response = client.post('/orders/cart/items', json={'item_id': '42'})
    assert response.status_code == 404


def test_drafts_flow(client):
    client.post('/orders/cart/items', json={'item_id': '5'})
    saved = client.post('/orders/drafts', json={'name': 'Window seat'})
    draft_id = saved.json()['draft_id']

    client.delete('/orders/cart')
    loaded = client.post(f'/orders/drafts/{draft_id}/load')
    assert loaded.status_code == 200
    assert loaded.json()['cart']['items'][0]['item_id'] == '5'

    assert client.delete(f'/orders/drafts/{draft_id}').status_code == 200
    assert client.delete(f'/orders/drafts/{draft_id}').status_code == 404


def test_sales_require_admin(client):
    assert client.get('/sales', headers=STAFF).status_code == 403
    assert len(client.get('/sales').json()) == 3


def test_unknown_role_rejected(client):
    response = client.get('/orders/cart', headers={'X-User-Id': 'u', 'X-Role': 'owner'})
    assert response.status_code == 400


def test_missing_user_outside_demo_mode(tmp_path, data_service):
    settings = Settings(project_root=tmp_path, data_mode='csv')
    client = TestClient(create_app(settings, data_service))
    assert client.get('/orders/cart').status_code == 401


def test_offer_edits_reach_open_cart(client):
    """Offers edited or created after the cart was opened price the same cart."""
    client.post('/orders/cart/items', json={'item_id': '1'})

    assert client.put('/offers/1', json={'discount_percent': 50}).status_code == 200
    created = client.post('/offers', json=offer_body('19:00', '21:00', name='Night'))
    night_id = created.json()['offer_id']

    client.post('/orders/cart/offers/1')
    cart = client.post(f'/orders/cart/offers/{night_id}').json()

    assert len(cart['cart']['items']) == 1
    assert Decimal(cart['pricing']['discount_total']) == Decimal('2.79')


def test_draft_of_another_restaurant_cannot_be_deleted(client):
    client.post('/orders/cart/items', json={'item_id': '1'})
    draft_id = client.post('/orders/drafts', json={'name': 'Mine'}).json()['draft_id']

    response = client.delete(f'/orders/drafts/{draft_id}', headers={'X-Org-Id': 'other-cafe'})

    assert response.status_code == 404
    assert [d['draft_id'] for d in client.get('/orders/drafts').json()] == [draft_id]


def test_offer_of_another_restaurant_cannot_be_deleted(client):
    response = client.delete('/offers/1', headers={'X-Org-Id': 'other-cafe'})
    assert response.status_code == 404
    assert len(client.get('/offers').json()) == 2


def test_quote_accepts_numeric_prices(client):
    response = client.post('/pricing/quote', json={'items': [{'item_id': '1', 'unit_price': 4.5, 'quantity': 2}]})
    assert response.status_code == 200
    assert Decimal(response.json()['subtotal']) == Decimal('9.0')


def test_sales_dashboard_endpoints(client):
    client.post('/orders/cart/items', json={'item_id': '1'})
    client.post('/orders/checkout')
    client.post('/orders/checkout/complete', json={'customer_name': 'Ana', 'customer_phone': '555-0101'})

    stats = client.get('/sales/stats').json()
    assert stats['today']['orders'] >= 1
    assert set(stats) == {'today', 'week', 'month'}

    today = client.get('/sales/today').json()
    assert today['my_orders'] >= 1

    sales = client.get('/sales').json()
    assert any(s['processed_by'] == 'demo-user' and s['profit'] == '3.30' for s in sales)

    assert client.get('/sales/stats', headers=STAFF).status_code == 403
    assert client.get('/sales/today', headers=STAFF).status_code == 200


def test_restaurant_listing_requires_master_admin(client):
    assert client.get('/orgs').status_code == 403

    response = client.get('/orgs', headers={'X-User-Id': 'root', 'X-Role': 'master_admin'})
    assert response.status_code == 200
    assert [o['id'] for o in response.json()] == ['demo-restaurant']
