"""BaseService — shared foundation for refnet services.

Every service receives the settings and a :class:`RelationshipStore` at
construction time. Services never open their own connections.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from refnet.domain.errors import RefnetError
from refnet.services.result import ServiceResult

if TYPE_CHECKING:
    from refnet.config.settings import RefnetSettings
    from refnet.domain.errors import RefnetWarning
    from refnet.infrastructure.store import RelationshipStore


class BaseService:
    """Base for service-layer classes.

    Usage::

        class NetworkService(BaseService):
            def build(self, root_id: str) -> ServiceResult:
                graph = asyncio.run(build_network(self._store, root_id, ...))
                ...
    """

    def __init__(self, store: RelationshipStore, settings: RefnetSettings) -> None:
        self._store = store
        self._settings = settings

    @staticmethod
    def _error(op: str, exc: RefnetError) -> ServiceResult:
        """Translate a domain exception into a failed result."""
        return ServiceResult.failure(op, exc.code, str(exc), **exc.detail)

    @staticmethod
    def _warning_messages(warnings: list[RefnetWarning]) -> list[str]:
        return [str(w) for w in warnings]
