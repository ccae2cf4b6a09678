"""Merchant device location."""

from .provider import HttpLocationProvider, LocationProvider, MerchantOrigin, PushedLocationProvider

__all__ = ["HttpLocationProvider", "LocationProvider", "MerchantOrigin", "PushedLocationProvider"]
