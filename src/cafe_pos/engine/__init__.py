"""Engine subpackage - core pricing logic and cart mutations."""
from .pricing_engine import PricingEngine
from .models import (
    ActiveWindow, Cart, InvalidInputError, ItemKind, LineItem, Offer, OfferScope, PricingResult,
)
from .cart import merge_or_add_line_item, remove_line_item, set_line_item_quantity, toggle_offer
from .offer_matcher import OfferMatcher, find_conflicts, offers_overlap, validate_offer_non_overlap

__all__ = [
    'PricingEngine', 'Cart', 'LineItem', 'Offer', 'OfferScope', 'ItemKind', 'ActiveWindow',
    'PricingResult', 'InvalidInputError',
    'merge_or_add_line_item', 'remove_line_item', 'set_line_item_quantity', 'toggle_offer',
    'OfferMatcher', 'find_conflicts', 'offers_overlap', 'validate_offer_non_overlap',
]
