"""
Core modules for the SafarSuraksha tourist safety service

This package contains the core business logic:
- geofencing: Zone catalog and multi-zone containment checks
- scoring: Safety score derivation from containment results
- emergency_alert: Panic alert creation and publish/subscribe fan-out
- itinerary: Deterministic itinerary proof values
- ledger: Anchoring proofs on a distributed ledger with fallback
"""

from .errors import (
    SafetyServiceError,
    InvalidInputError,
    ZoneConfigurationError,
    LedgerUnavailableError
)

from .geofencing import (
    ZoneRegistry,
    calculate_distance,
    evaluate_containment
)

from .scoring import (
    SafetyScorer,
    TwoLevelSafetyScorer
)

from .emergency_alert import (
    AlertBroadcaster,
    AlertSubscription,
    create_panic_alert,
    NEW_ALERT_EVENT
)

from .itinerary import (
    build_itinerary_proof,
    derive_proof_value
)

from .ledger import (
    LedgerClient,
    LedgerRegistrar,
    RegistrationState
)

__all__ = [
    # Errors
    "SafetyServiceError",
    "InvalidInputError",
    "ZoneConfigurationError",
    "LedgerUnavailableError",

    # Geofencing
    "ZoneRegistry",
    "calculate_distance",
    "evaluate_containment",

    # Scoring
    "SafetyScorer",
    "TwoLevelSafetyScorer",

    # Alerts
    "AlertBroadcaster",
    "AlertSubscription",
    "create_panic_alert",
    "NEW_ALERT_EVENT",

    # Registration
    "build_itinerary_proof",
    "derive_proof_value",
    "LedgerClient",
    "LedgerRegistrar",
    "RegistrationState"
]
