"""Storefront API: catalog, cart, wishlist, coupons, addresses and checkout."""

__version__ = "1.0.0"
