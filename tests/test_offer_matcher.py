"""
Offer window tests: overlap detection and active-offer matching.
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

from cafe_pos.engine import (
    ActiveWindow, InvalidInputError, Offer, OfferMatcher,
    find_conflicts, offers_overlap, validate_offer_non_overlap,
)


def make_offer(offer_id, start_date, end_date, start_time, end_time, percent='10', is_active=True):
    return Offer(
        offer_id=offer_id,
        name=f"Offer {offer_id}",
        discount_percent=Decimal(percent),
        window=ActiveWindow(start_date, end_date, start_time, end_time),
        is_active=is_active,
    )


@pytest.fixture(scope="function")
def june_offers():
    return {
        'A': make_offer('A', '2025-06-01', '2025-06-30', '09:00', '12:00'),
        'B': make_offer('B', '2025-06-15', '2025-07-15', '13:00', '15:00'),
        'C': make_offer('C', '2025-06-20', '2025-06-25', '11:00', '14:00'),
    }


def test_dates_overlap_but_times_do_not(june_offers):
    assert not offers_overlap(june_offers['B'], june_offers['A'])
    assert validate_offer_non_overlap(june_offers['B'], [june_offers['A']])


def test_dates_and_times_overlap(june_offers):
    assert offers_overlap(june_offers['C'], june_offers['A'])
    assert not validate_offer_non_overlap(june_offers['C'], [june_offers['A'], june_offers['B']])
    conflicts = find_conflicts(june_offers['C'], [june_offers['A'], june_offers['B']])
    assert [o.offer_id for o in conflicts] == ['A', 'B']


def test_touching_bounds_count_as_overlap():
    first = make_offer('1', '2025-01-01', '2025-01-31', '08:00', '10:00')
    second = make_offer('2', '2025-01-31', '2025-02-28', '10:00', '12:00')
    assert offers_overlap(first, second), "Inclusive bounds: a shared minute is an overlap"


def test_offer_does_not_conflict_with_itself(june_offers):
    edited = make_offer('A', '2025-06-01', '2025-06-30', '09:00', '12:30')
    assert validate_offer_non_overlap(edited, [june_offers['A']])


def test_empty_bounds_are_open_ended():
    open_offer = make_offer('1', '', '', '', '')
    dated = make_offer('2', '2030-01-01', '2030-01-02', '06:00', '07:00')
    assert offers_overlap(open_offer, dated)


def test_window_format_is_validated():
    with pytest.raises(InvalidInputError):
        ActiveWindow('2025/06/01', '', '', '')
    with pytest.raises(InvalidInputError):
        ActiveWindow('', '', '9:00', '')


def test_find_active_offers_at_moment(june_offers):
    matcher = OfferMatcher()
    moment = datetime(2025, 6, 22, 11, 30)

    matched = matcher.find_active_offers(june_offers.values(), at=moment)

    assert sorted(m.offer.offer_id for m in matched) == ['A', 'C']
    assert "after 09:00" in next(m for m in matched if m.offer.offer_id == 'A').match_reason


def test_find_active_offers_skips_inactive_and_sorts_by_discount():
    offers = [
        make_offer('low', '', '', '', '', percent='5'),
        make_offer('high', '', '', '', '', percent='20'),
        make_offer('off', '', '', '', '', percent='50', is_active=False),
    ]

    matched = OfferMatcher().find_active_offers(offers, at=datetime(2025, 1, 1, 12, 0))

    assert [m.offer.offer_id for m in matched] == ['high', 'low']
    assert matched[0].match_reason == "always"


def test_offer_percent_range():
    with pytest.raises(InvalidInputError):
        make_offer('x', '', '', '', '', percent='120')
    with pytest.raises(InvalidInputError):
        make_offer('x', '', '', '', '', percent='-1')
