"""Role labels, relationship kinds and the per-graph lifecycle.

A network graph moves through a coarse lifecycle:
``unbuilt → built → laid_out → interactive → discarded``.
Drag, zoom and filter happen inside ``interactive`` and never change it.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Role label shown for a person in the network."""

    MEMBER = "member"
    REFERRAL = "referral"
    LEAD = "lead"


class RelationshipType(StrEnum):
    """Relationship discriminator. Only referrals are traversed."""

    REFERRAL = "referral"
    FAMILY = "family"
    COLLEAGUE = "colleague"
    OTHER = "other"


class NetworkState(StrEnum):
    """Coarse lifecycle of a single network graph instance."""

    UNBUILT = "unbuilt"
    BUILT = "built"
    LAID_OUT = "laid_out"
    INTERACTIVE = "interactive"
    DISCARDED = "discarded"


# --- Transition map ---

NETWORK_TRANSITIONS: dict[str, list[str]] = {
    "unbuilt": ["built", "discarded"],
    "built": ["laid_out", "discarded"],
    "laid_out": ["laid_out", "interactive", "discarded"],
    "interactive": ["interactive", "discarded"],
    "discarded": [],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = NETWORK_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
