"""Name availability checks against the chain's name index."""

from __future__ import annotations

import logging

from namewallet.features.names.models import OwnershipRecord
from namewallet.shared.protocols import ChainIndexProtocol

logger = logging.getLogger(__name__)


class NameAvailabilityChecker:
    """Decides whether a name may be committed to right now.

    A name is free when the index has no record for it, when its last
    registration has expired, or when the record cannot be read. The last
    case errs towards "available": the chain itself rejects a reveal for a
    live name, so the worst outcome is a wasted commitment.
    """

    def __init__(self, chain: ChainIndexProtocol):
        self.chain = chain

    def _lookup(self, name: bytes) -> OwnershipRecord | None:
        try:
            return self.chain.lookup_last_ownership_record(name)
        except Exception as e:
            logger.warning(
                "Could not read name index for %r, treating as available: %s", name, e
            )
            return None

    def _height(self, current_height: int | None) -> int:
        if current_height is not None:
            return current_height
        return self.chain.current_height()

    def is_available(self, name: bytes, current_height: int | None = None) -> bool:
        record = self._lookup(name)
        if record is None or record.height is None:
            return True

        try:
            height = self._height(current_height)
            depth = self.chain.expiration_depth(record.height)
        except Exception as e:
            logger.warning(
                "Could not evaluate expiry of %r, treating as available: %s", name, e
            )
            return True

        return height - record.height >= depth

    def expires_in(self, name: bytes, current_height: int | None = None) -> int | None:
        record = self._lookup(name)
        if record is None or record.height is None:
            return None

        try:
            height = self._height(current_height)
            depth = self.chain.expiration_depth(record.height)
        except Exception as e:
            logger.warning("Could not evaluate expiry of %r: %s", name, e)
            return None

        return max(0, record.height + depth - height)

    def live_record(
        self, name: bytes, current_height: int | None = None
    ) -> OwnershipRecord | None:
        """The ownership record of ``name`` if it has not expired."""
        record = self._lookup(name)
        if record is None or record.height is None:
            return None
        height = self._height(current_height)
        if height - record.height >= self.chain.expiration_depth(record.height):
            return None
        return record
