"""
Services Package

Collaborators the ledger engine talks to: storage, identity, the clock and
view invalidation hooks.
"""

from household_ledger.services.clock import Clock, FixedClock, SystemClock
from household_ledger.services.hooks import InvalidationHook, RecordingHook
from household_ledger.services.identity import IdentityProvider, StaticIdentityProvider

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "InvalidationHook",
    "RecordingHook",
    "IdentityProvider",
    "StaticIdentityProvider",
]
