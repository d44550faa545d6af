# anonymous, best-effort session identity
# nothing in the forecast path depends on it and a failure here never blocks a view

from __future__ import annotations
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)


class IdentityProvider:
    def get_or_create_session_id(self) -> str:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    # random id, stable for the lifetime of this object
    def __init__(self, session_id: Optional[str] = None):
        self._session_id = session_id

    def get_or_create_session_id(self) -> str:
        if self._session_id is None:
            self._session_id = uuid.uuid4().hex
        return self._session_id


def resolve_session_id(provider: Optional[IdentityProvider] = None) -> str:
    if provider is None:
        return LocalIdentityProvider().get_or_create_session_id()
    try:
        session_id = provider.get_or_create_session_id()
    except Exception as exc:  # any backend failure falls back to a local id
        logger.warning("Identity provider %s failed, using a local session id: %s", type(provider).__name__, exc)
        return uuid.uuid4().hex
    if not session_id:
        logger.warning("Identity provider %s returned an empty id, using a local one", type(provider).__name__)
        return uuid.uuid4().hex
    return session_id
