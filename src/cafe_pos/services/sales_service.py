"""
Sales Service - dashboard figures over the sales history.

Periods count back from a moment: today starts at midnight, the week and
month are the trailing 7 and 28 days.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import pandas as pd

from ..data.records import created_within
from ..data.service import DataService
from .results import ServiceResult, call_service
from .session import Session


logger = logging.getLogger(__name__)

PERIOD_DAYS = {
    'today': 0,
    'week': 7,
    'month': 28,
}

SALES_COLUMNS = ['sale_id', 'created_at', 'customer_name', 'payment_method', 'processed_by',
                 'total', 'discount', 'profit', 'items']


def period_start(period: str, now: datetime) -> str:
    """ISO lower bound of a dashboard period."""
    if period == 'today':
        start = datetime(now.year, now.month, now.day)
    else:
        start = now - timedelta(days=PERIOD_DAYS[period])
    return start.isoformat(timespec='seconds')


def _money(value) -> Decimal:
    # Empty object columns sum to int 0
    return value if isinstance(value, Decimal) else Decimal(str(value))


def summarize(frame: pd.DataFrame) -> dict:
    """Sales, order count, profit and margin percent of a sales frame."""
    sales = _money(frame['total'].sum())
    profit = _money(frame['profit'].sum())
    return {
        'sales': sales,
        'orders': len(frame),
        'profit': profit,
        'margin': (profit / sales * 100) if sales else Decimal(0),
    }


class SalesService:
    """Sales figures for the session's restaurant."""

    def __init__(self, data_service: DataService, session: Session):
        self.data_service = data_service
        self.session = session

    def sales_frame(self, start: Optional[str] = None, end: Optional[str] = None) -> pd.DataFrame:
        """One row per sale; money columns hold Decimals."""
        sales = self.data_service.list_sales(self.session.org_id, start, end)
        return pd.DataFrame([
            {
                'sale_id': s.sale_id,
                'created_at': s.created_at,
                'customer_name': s.customer_name,
                'payment_method': s.payment_method,
                'processed_by': s.processed_by,
                'total': s.total_amount,
                'discount': s.discount_amount,
                'profit': s.profit,
                'items': s.item_count,
            }
            for s in sales
        ], columns=SALES_COLUMNS)

    def period_stats(self, now: Optional[datetime] = None) -> ServiceResult:
        """Today, week and month figures (admin)."""
        self.session.require('admin')
        now = now or datetime.now()
        result = call_service("load sales", self.sales_frame)
        if not result.ok:
            return result

        frame = result.data
        stats = {}
        for period in PERIOD_DAYS:
            start = period_start(period, now)
            in_period = frame[frame['created_at'].map(lambda c: created_within(c, start)).astype(bool)]
            stats[period] = summarize(in_period)
        return ServiceResult.success(stats)

    def staff_today(self, now: Optional[datetime] = None) -> ServiceResult:
        """Today's orders and revenue, and how many the session's user processed."""
        now = now or datetime.now()
        result = call_service("load sales", self.sales_frame, period_start('today', now))
        if not result.ok:
            return result

        frame = result.data
        return ServiceResult.success({
            'orders': len(frame),
            'sales': _money(frame['total'].sum()),
            'my_orders': int((frame['processed_by'] == self.session.user_id).sum()),
        })

    def top_items(self, limit: int = 5) -> ServiceResult:
        """Best sellers by quantity across the whole history (admin)."""
        self.session.require('admin')
        result = call_service("load sales", self.data_service.list_sales, self.session.org_id)
        if not result.ok:
            return result

        lines = pd.DataFrame(
            [
                {'item_id': line.item_id, 'kind': line.kind, 'name': line.name, 'quantity': line.quantity}
                for sale in result.data for line in sale.lines
            ],
            columns=['item_id', 'kind', 'name', 'quantity'],
        )
        if lines.empty:
            return ServiceResult.success([])

        top = (
            lines.groupby(['item_id', 'kind'], as_index=False)
            .agg(name=('name', 'first'), quantity=('quantity', 'sum'))
            .sort_values(['quantity', 'name'], ascending=[False, True])
            .head(limit)
        )
        return ServiceResult.success([
            {'item_id': row['item_id'], 'kind': row['kind'], 'name': row['name'], 'quantity': int(row['quantity'])}
            for row in top.to_dict(orient='records')
        ])

    def restaurant_overview(self) -> ServiceResult:
        """Every restaurant with its order count and revenue (master admin)."""
        self.session.require('master_admin')
        orgs = call_service("load restaurants", self.data_service.list_orgs)
        if not orgs.ok:
            return orgs

        overview = []
        for org in sorted(orgs.data, key=lambda o: o.get('name', '')):
            sales = call_service("load sales", self.data_service.list_sales, org['id'])
            if not sales.ok:
                return sales
            overview.append({
                'id': org['id'],
                'name': org.get('name', org['id']),
                'orders': len(sales.data),
                'revenue': sum((s.total_amount for s in sales.data), Decimal(0)),
            })
        logger.debug("Restaurant overview: %d restaurants", len(overview))
        return ServiceResult.success(overview)
