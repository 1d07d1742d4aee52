"""
Cafe POS Package

Order entry and pricing for a small cafe chain.
Composes cart subtotal, quick discount and time-windowed offers into a total.
"""

__version__ = "1.0.0"
