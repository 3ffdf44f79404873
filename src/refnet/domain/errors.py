"""Error and warning taxonomy for the referral network engine.

Errors are fatal to the call that raised them and surface to the caller.
Warnings are non-fatal: they are logged, collected on the graph, and the
operation proceeds with best-effort data.
"""

from __future__ import annotations

from typing import Any


class RefnetError(Exception):
    """Base class for all fatal network errors.

    ``code`` is the stable identifier services put in ``ServiceError.code``;
    ``detail`` carries the structured context.
    """

    code = "REFNET_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.detail: dict[str, Any] = detail


class NotFoundError(RefnetError):
    """A requested person or node does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity_id: str, what: str = "Person") -> None:
        super().__init__(f"{what} '{entity_id}' not found", id=entity_id)
        self.entity_id = entity_id


class InvalidViewportError(RefnetError):
    """Viewport width or height is not positive."""

    code = "INVALID_VIEWPORT"

    def __init__(self, width: float, height: float) -> None:
        super().__init__(
            f"Viewport must have positive dimensions, got {width}x{height}",
            width=width,
            height=height,
        )
        self.width = width
        self.height = height


class InvalidDepthError(RefnetError, ValueError):
    """A negative traversal depth was requested."""

    code = "INVALID_DEPTH"

    def __init__(self, depth: int) -> None:
        super().__init__(f"max_depth must be non-negative, got {depth}", depth=depth)
        self.depth = depth


class InvalidStateError(RefnetError):
    """An operation was attempted in the wrong lifecycle state."""

    code = "INVALID_STATE"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move network from '{current}' to '{target}'",
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class InvalidDragError(RefnetError):
    """A drag transition was requested out of order."""

    code = "INVALID_DRAG"


class RefnetWarning(UserWarning):
    """Base class for non-fatal network warnings."""


class PartialDataWarning(RefnetWarning):
    """A relationship points at a person that cannot be resolved."""

    def __init__(self, relationship_id: str, missing_id: str) -> None:
        super().__init__(
            f"Relationship '{relationship_id}' points to unknown person '{missing_id}'"
        )
        self.relationship_id = relationship_id
        self.missing_id = missing_id


class DepthCappedWarning(RefnetWarning):
    """The requested traversal depth exceeded the safety ceiling."""

    def __init__(self, requested: int, ceiling: int) -> None:
        super().__init__(f"Requested depth {requested} capped to {ceiling}")
        self.requested = requested
        self.ceiling = ceiling
