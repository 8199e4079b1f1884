"""Interchangeable third-party mileage backends."""

from .base import HttpMileageProvider, MileageProvider
from .google import GoogleDirectionsProvider
from .milemaker import MileMakerProvider
from .pcmiler import PCMilerProvider
from .registry import FALLBACK_ORDER, build_providers, fallbacks_for, resolution_chain

__all__ = [
    "FALLBACK_ORDER",
    "GoogleDirectionsProvider",
    "HttpMileageProvider",
    "MileMakerProvider",
    "MileageProvider",
    "PCMilerProvider",
    "build_providers",
    "fallbacks_for",
    "resolution_chain",
]
