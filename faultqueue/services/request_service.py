"""Persistence for the request entity that owns approval state."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol

from sqlalchemy.orm import Session

from faultqueue.core.types import MediaRequest
from faultqueue.db import session_scope
from faultqueue.logging import get_logger
from faultqueue.models import RequestedMedia

logger = get_logger(__name__)


class RequestRepository(Protocol):
    def update_request(self, request: MediaRequest) -> None:
        """Persist approval and state changes for ``request``."""


class SqlRequestRepository:
    """Writes request snapshots back to the ``requested_media`` table."""

    def __init__(
        self, *, session_factory: Callable[[], AbstractContextManager[Session]] = session_scope
    ) -> None:
        self._session_factory = session_factory

    def update_request(self, request: MediaRequest) -> None:
        with self._session_factory() as session:
            row = session.get(RequestedMedia, request.request_id)
            if row is None:
                # The request row may predate this store; recreate it from the snapshot.
                row = RequestedMedia(id=request.request_id)
                logger.info(
                    "event=request.update request_id=%s result=created", request.request_id
                )
            row.type = request.item_kind
            row.title = request.title
            row.provider_id = request.provider_id
            row.imdb_id = request.imdb_id
            row.musicbrainz_id = request.musicbrainz_id
            row.approved = bool(request.approved)
            row.available = bool(request.available)
            row.content = request.to_mapping()
            session.add(row)

    def get_request(self, request_id: int) -> MediaRequest | None:
        with self._session_factory() as session:
            row = session.get(RequestedMedia, request_id)
            if row is None or row.content is None:
                return None
            return MediaRequest.from_mapping(row.content)


__all__ = ["RequestRepository", "SqlRequestRepository"]
