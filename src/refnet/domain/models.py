"""Read-only records fetched from the relationship store.

Neither model is owned by the network engine: they are looked up on
demand, copied into node and edge views, and never written back.
"""

from __future__ import annotations

from pydantic import BaseModel

from refnet.domain.types import RelationshipType, Role


class Person(BaseModel):
    """A person record with contact fields and role flags."""

    model_config = {"frozen": True}

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    is_member: bool = False
    is_referral: bool = False
    is_lead: bool = False

    @property
    def name(self) -> str:
        """Display name (first and last name joined, blanks dropped)."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def role(self) -> Role:
        """Role label. A member outranks a referral, which outranks a lead."""
        if self.is_member:
            return Role.MEMBER
        if self.is_referral:
            return Role.REFERRAL
        return Role.LEAD


class Relationship(BaseModel):
    """A directed relationship from *source_id* to *target_id*.

    For referrals the source is the referrer and the target the person
    referred.
    """

    model_config = {"frozen": True}

    id: str
    source_id: str
    target_id: str
    type: RelationshipType = RelationshipType.REFERRAL
    direction: str = "outgoing"
    is_primary: bool = False
    strength: str | None = None

    @property
    def is_referral(self) -> bool:
        return self.type == RelationshipType.REFERRAL
