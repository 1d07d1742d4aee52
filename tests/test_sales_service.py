"""
Sales service tests: period figures, staff view, best sellers and restaurant overview.
"""
import pytest
import sys
import os
from datetime import datetime
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cafe_pos.data import DEMO_ORG_ID, DataServiceError, DemoDataService, SaleLine, SaleRecord
from cafe_pos.services.sales_service import SalesService, period_start
from cafe_pos.services.session import PermissionDenied, Session


NOW = datetime(2025, 6, 30, 12, 0)


def make_sale(created_at, total, cost, cashier, lines):
    return SaleRecord(
        org_id=DEMO_ORG_ID,
        customer_name='Guest',
        customer_phone='555-0100',
        payment_method='cash',
        subtotal=Decimal(total),
        discount_amount=Decimal(0),
        total_amount=Decimal(total),
        lines=[
            SaleLine(item_id, name, 'product', qty, Decimal(0), Decimal(0),
                     Decimal(cost) / qty if i == 0 else Decimal(0))
            for i, (item_id, name, qty) in enumerate(lines)
        ],
        created_at=created_at,
        processed_by=cashier,
    )


@pytest.fixture(scope="function")
def data_service():
    service = DemoDataService(seed=False)
    for sale in [
        make_sale('2025-06-30T09:00:00', '10.00', '4.00', 'cashier-1', [('3', 'Latte', 1)]),
        make_sale('2025-06-27T10:00:00', '20.00', '8.00', 'cashier-2', [('3', 'Latte', 2), ('5', 'Mocha', 1)]),
        make_sale('2025-06-10T10:00:00', '30.00', '10.00', 'cashier-1', [('5', 'Mocha', 5)]),
        make_sale('2025-05-01T10:00:00', '100.00', '50.00', 'cashier-2', [('2', 'Espresso', 1)]),
    ]:
        service.commit_sale(sale)
    return service


def admin(data_service, role='admin', user_id='admin-1'):
    return SalesService(data_service, Session(user_id, DEMO_ORG_ID, role=role))


def test_period_start():
    assert period_start('today', NOW) == '2025-06-30T00:00:00'
    assert period_start('week', NOW) == '2025-06-23T12:00:00'
    assert period_start('month', NOW) == '2025-06-02T12:00:00'


def test_period_stats(data_service):
    stats = admin(data_service).period_stats(now=NOW).data

    assert stats['today'] == {
        'sales': Decimal('10.00'), 'orders': 1, 'profit': Decimal('6.00'), 'margin': Decimal('60'),
    }
    assert stats['week']['sales'] == Decimal('30.00')
    assert stats['week']['orders'] == 2
    assert stats['week']['profit'] == Decimal('18.00')
    assert stats['month']['orders'] == 3
    assert stats['month']['profit'] == Decimal('38.00')
    assert stats['month']['margin'] == Decimal('38.00') / Decimal('60.00') * 100


def test_period_stats_without_sales():
    stats = admin(DemoDataService(seed=False)).period_stats(now=NOW).data

    for figures in stats.values():
        assert figures == {'sales': Decimal(0), 'orders': 0, 'profit': Decimal(0), 'margin': Decimal(0)}


def test_staff_today_counts_own_orders(data_service):
    staff = SalesService(data_service, Session('cashier-1', DEMO_ORG_ID))

    today = staff.staff_today(now=NOW).data

    assert today == {'orders': 1, 'sales': Decimal('10.00'), 'my_orders': 1}


def test_staff_cannot_see_period_stats(data_service):
    staff = SalesService(data_service, Session('cashier-1', DEMO_ORG_ID))
    with pytest.raises(PermissionDenied):
        staff.period_stats()
    with pytest.raises(PermissionDenied):
        staff.top_items()


def test_top_items(data_service):
    top = admin(data_service).top_items(limit=2).data

    assert [(t['name'], t['quantity']) for t in top] == [('Mocha', 6), ('Latte', 3)]


def test_restaurant_overview(data_service):
    data_service.orgs.append({'id': 'harbor-cafe', 'name': 'Harbor Cafe'})

    overview = admin(data_service, role='master_admin').restaurant_overview().data

    assert [o['name'] for o in overview] == ['Demo Cafe', 'Harbor Cafe']
    assert overview[0]['orders'] == 4
    assert overview[0]['revenue'] == Decimal('160.00')
    assert overview[1]['orders'] == 0


def test_restaurant_overview_requires_master_admin(data_service):
    with pytest.raises(PermissionDenied):
        admin(data_service).restaurant_overview()


def test_storage_failure_is_reported(data_service, monkeypatch):
    def broken(org_id, start=None, end=None):
        raise DataServiceError("disk full")

    monkeypatch.setattr(data_service, 'list_sales', broken)
    result = admin(data_service).period_stats(now=NOW)

    assert not result.ok
    assert "disk full" in result.error
