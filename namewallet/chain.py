"""Chain index backed by a Namecoin-style node's JSON-RPC interface."""

from __future__ import annotations

import logging

from namewallet.features.names import policy
from namewallet.features.names.models import OwnershipRecord
from namewallet.shared.network import NetworkClient, NetworkError, NetworkErrorType

logger = logging.getLogger(__name__)

RPC_NAME_NOT_FOUND = -4
RPC_INVALID_ADDRESS_OR_KEY = -5


def _rpc_code(error: NetworkError) -> int | None:
    if error.error_type != NetworkErrorType.RPC_ERROR:
        return None
    return error.rpc_code


class RpcChainIndex:
    def __init__(self, client: NetworkClient, testnet: bool = False):
        self.client = client
        self.testnet = testnet

    @staticmethod
    def _name_param(name: bytes) -> str:
        try:
            return name.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"Name {name!r} cannot be sent over JSON-RPC") from e

    def current_height(self) -> int:
        return int(self.client.call("getblockcount"))

    def is_initial_sync(self) -> bool:
        info = self.client.call("getblockchaininfo") or {}
        return bool(info.get("initialblockdownload", False))

    def lookup_last_ownership_record(self, name: bytes) -> OwnershipRecord | None:
        try:
            result = self.client.call("name_show", self._name_param(name))
        except NetworkError as e:
            if _rpc_code(e) == RPC_NAME_NOT_FOUND:
                return None
            raise

        if not result:
            return None

        height = result.get("height")
        value = result.get("value") or ""
        return OwnershipRecord(
            name=name,
            txid=result.get("txid", ""),
            height=int(height) if height is not None else None,
            value=value.encode("utf-8"),
        )

    def expiration_depth(self, record_height: int) -> int:
        return policy.expiration_depth(record_height)

    def confirmation_depth(self, txid: str) -> int:
        try:
            result = self.client.call("gettransaction", txid)
        except NetworkError as e:
            if _rpc_code(e) == RPC_INVALID_ADDRESS_OR_KEY:
                return 0
            raise
        return int((result or {}).get("confirmations", 0))

    def network_fee(self, height: int) -> int:
        return policy.network_fee(height, testnet=self.testnet)

    def pending_broadcast_operations(self, name: bytes) -> list[str]:
        name_param = self._name_param(name)
        pending = self.client.call("name_pending", name_param) or []
        return [
            entry["txid"]
            for entry in pending
            if entry.get("name") == name_param and "txid" in entry
        ]
