"""Name registration business logic for the name wallet.

Registration is a commit-reveal exchange. ``name_new`` publishes only the
hash of a secret random value and the name. The matching
``name_firstupdate`` reveals both, and the chain accepts it only once the
commitment is ``maturity_depth`` blocks deep, so nobody can see the name in
the mempool and race the owner to it. The reveal is built right after the
commitment, persisted, and broadcast later by :meth:`finalize_pending_reveals`.

Locking: ``chain_lock`` guards the pending store and every chain read made
while deciding on a transaction; ``wallet_lock`` guards wallet transaction
access and is only ever taken while ``chain_lock`` is held.
"""

from __future__ import annotations

import logging
import secrets
import threading
from typing import Callable, TypeVar

from namewallet.features.names.availability import NameAvailabilityChecker
from namewallet.features.names.codec import (
    NameOperation,
    compute_commitment_hash,
    decode_payload,
    encode_first_update_payload,
    encode_new_payload,
    encode_randomness,
    encode_update_payload,
    fee_script,
    index_of_name_output,
)
from namewallet.features.names.errors import (
    NameErrorKind,
    NameOperationError,
    TransactionBuildError,
)
from namewallet.features.names.models import (
    FinalizeReport,
    NameNewResult,
    NameUpdateResult,
    OperationResult,
    PendingRegistration,
    RegistrationState,
    Transaction,
    TxOutput,
)
from namewallet.features.names.policy import round_up_fee
from namewallet.features.names.store import PendingRegistrationStore
from namewallet.features.names.validators import AddressValidator, NameValidator
from namewallet.shared.config import RegistrationConfig
from namewallet.shared.logging import get_logger, log_with_context
from namewallet.shared.protocols import ChainIndexProtocol, WalletProtocol

logger = get_logger(__name__)

T = TypeVar("T")


def _coerce_name(name: object) -> bytes:
    if isinstance(name, bytes):
        return name
    if isinstance(name, str):
        return name.encode("utf-8")
    return b""


class NameRegistrationService:
    def __init__(
        self,
        wallet: WalletProtocol,
        chain: ChainIndexProtocol,
        store: PendingRegistrationStore | None = None,
        config: RegistrationConfig | None = None,
        chain_lock: threading.RLock | None = None,
        wallet_lock: threading.RLock | None = None,
    ):
        self.wallet = wallet
        self.chain = chain
        self.store = store if store is not None else PendingRegistrationStore()
        self.config = config or RegistrationConfig()
        self.availability = NameAvailabilityChecker(chain)
        self.chain_lock = chain_lock or threading.RLock()
        self.wallet_lock = wallet_lock or threading.RLock()

    # -- validation helpers -------------------------------------------------

    def _validate_name(self, name: str | bytes) -> bytes:
        result = NameValidator.validate_name(name, self.config.max_name_length)
        if not result.is_valid:
            raise NameOperationError(
                kind=NameErrorKind.INVALID_INPUT,
                message=result.error_message or "Invalid name",
            )
        return result.normalized_value

    def _validate_value(self, data: str | bytes | None) -> bytes:
        result = NameValidator.validate_value(data, self.config.max_value_length)
        if not result.is_valid:
            raise NameOperationError(
                kind=NameErrorKind.INVALID_INPUT,
                message=result.error_message or "Invalid value",
            )
        return result.normalized_value

    @staticmethod
    def _call(operation: Callable[[], T], kind: NameErrorKind, context: str) -> T:
        try:
            return operation()
        except NameOperationError:
            raise
        except Exception as e:
            raise NameOperationError.wrap(e, kind, context) from e

    @staticmethod
    def _new_randomness() -> int:
        randomness = 0
        while randomness == 0:
            randomness = secrets.randbits(64)
        return randomness

    def _reserve_destination_script(self) -> bytes:
        address = self._call(
            self.wallet.reserve_destination_key,
            NameErrorKind.TRANSACTION_BUILD_FAILED,
            "Reserve destination key",
        )
        result = AddressValidator.validate(address)
        if not result.is_valid:
            raise NameOperationError(
                kind=NameErrorKind.TRANSACTION_BUILD_FAILED,
                message=f"Wallet returned an unusable destination address: {result.error_message}",
            )
        return result.normalized_value

    # -- chain-state checks (chain_lock held) -------------------------------

    def _check_no_pending_operations(self, name: bytes) -> None:
        pending = self._call(
            lambda: self.chain.pending_broadcast_operations(name),
            NameErrorKind.TRANSACTION_BUILD_FAILED,
            "Read pending name operations",
        )
        if pending:
            logger.warning(
                "There are %d pending operations on name %r, including %s",
                len(pending),
                name,
                pending[0],
            )
            raise NameOperationError(
                kind=NameErrorKind.PENDING_CONFLICT,
                message=f"There are pending operations on that name ({len(pending)}, including {pending[0]})",
                details={"count": len(pending), "first_txid": pending[0]},
            )

    def _current_height(self) -> int:
        return self._call(
            self.chain.current_height,
            NameErrorKind.TRANSACTION_BUILD_FAILED,
            "Read chain height",
        )

    def _lookup_wallet_transaction(self, txid: str) -> Transaction:
        with self.wallet_lock:
            tx = self._call(
                lambda: self.wallet.lookup_transaction(txid),
                NameErrorKind.NOT_IN_WALLET,
                "Look up wallet transaction",
            )
        if tx is None:
            raise NameOperationError(
                kind=NameErrorKind.NOT_IN_WALLET,
                message=f"Transaction {txid} is not in the wallet",
                details={"txid": txid},
            )
        return tx

    @staticmethod
    def _verify_commitment(source_tx: Transaction, name: bytes, randomness: int) -> int:
        for index, output in enumerate(source_tx.outputs):
            decoded = decode_payload(output.script)
            if decoded is None:
                continue
            if decoded.operation != NameOperation.NEW:
                raise NameOperationError(
                    kind=NameErrorKind.PAYLOAD_MISMATCH,
                    message="Previous transaction wasn't a name_new",
                )
            if decoded.commitment_hash != compute_commitment_hash(randomness, name):
                raise NameOperationError(
                    kind=NameErrorKind.PAYLOAD_MISMATCH,
                    message="Previous tx used a different random value",
                )
            return index

        raise NameOperationError(
            kind=NameErrorKind.PAYLOAD_MISMATCH,
            message="Previous tx on this name is not a name tx",
        )

    def _build_spending(
        self, outputs: list[TxOutput], source_tx: Transaction, output_index: int
    ) -> tuple[Transaction, int]:
        try:
            return self.wallet.build_transaction_from_existing_output(
                outputs, source_tx, output_index
            )
        except NameOperationError:
            raise
        except Exception as e:
            required_fee = e.required_fee if isinstance(e, TransactionBuildError) else 0
            required = self.config.name_amount + required_fee
            try:
                balance = self.wallet.get_balance()
            except Exception:
                balance = None
            if balance is not None and required > balance:
                raise NameOperationError(
                    kind=NameErrorKind.INSUFFICIENT_FUNDS,
                    message=(
                        f"Insufficient funds: this transaction requires a transaction fee "
                        f"of at least {required_fee}, balance is {balance}"
                    ),
                    details={
                        "required": required,
                        "required_fee": required_fee,
                        "balance": balance,
                    },
                ) from e
            raise NameOperationError.wrap(
                e, NameErrorKind.TRANSACTION_BUILD_FAILED, "Transaction creation failed"
            ) from e

    # -- availability ---------------------------------------------------------

    def name_available(self, name: str | bytes) -> bool:
        try:
            vch_name = self._validate_name(name)
        except NameOperationError:
            return False
        with self.chain_lock:
            return self.availability.is_available(vch_name)

    # -- name_new -------------------------------------------------------------

    def _ensure_registrable(self, name: bytes) -> None:
        if name in self.store:
            raise NameOperationError(
                kind=NameErrorKind.PENDING_CONFLICT,
                message="A registration for this name is already pending",
            )
        self._check_no_pending_operations(name)
        if not self.availability.is_available(name):
            raise NameOperationError(
                kind=NameErrorKind.ALREADY_REGISTERED,
                message="This name is already active",
            )

    def _fund_commitment(self, script: bytes) -> str:
        amount = self.config.name_amount
        try:
            return self.wallet.fund_and_broadcast(script, amount)
        except NameOperationError:
            raise
        except Exception as e:
            try:
                balance = self.wallet.get_balance()
            except Exception:
                balance = None
            if balance is not None and amount > balance:
                raise NameOperationError(
                    kind=NameErrorKind.INSUFFICIENT_FUNDS,
                    message=f"Insufficient funds for name_new: need {amount}, balance is {balance}",
                    details={"required": amount, "balance": balance},
                ) from e
            raise NameOperationError.wrap(
                e, NameErrorKind.BROADCAST_FAILED, "name_new broadcast failed"
            ) from e

    def name_new(self, name: str | bytes) -> NameNewResult:
        try:
            vch_name = self._validate_name(name)
        except NameOperationError as e:
            return NameNewResult(ok=False, name=_coerce_name(name), error=e)

        with self.chain_lock:
            try:
                self._ensure_registrable(vch_name)
                randomness = self._new_randomness()
                commitment_hash = compute_commitment_hash(randomness, vch_name)
                script = encode_new_payload(
                    commitment_hash, self._reserve_destination_script()
                )
                txid = self._fund_commitment(script)
                self.store.insert(vch_name, randomness, commitment_hash, txid)
            except NameOperationError as e:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"name_new failed: {e.message}",
                    name=repr(vch_name),
                    error_kind=e.kind.value,
                )
                return NameNewResult(ok=False, name=vch_name, error=e)

            log_with_context(
                logger,
                logging.INFO,
                "name_new broadcast",
                name=repr(vch_name),
                txid=txid,
                commitment=commitment_hash.hex(),
            )

            # the registration stands even if the reveal cannot be built yet;
            # it can be reconfigured any time before maturity
            prepared = self.name_first_update_prepare(vch_name, b"")
            if not prepared.ok:
                logger.warning(
                    "name_firstupdate prepare for %r returned error: %s",
                    vch_name,
                    prepared.error,
                )

        return NameNewResult(
            ok=True,
            name=vch_name,
            commitment_txid=txid,
            randomness=randomness,
            commitment_hash=commitment_hash,
            reveal_error=prepared.error,
        )

    # -- name_firstupdate -----------------------------------------------------

    def _create_first_update(self, name: bytes, value: bytes) -> PendingRegistration:
        source_txid = self.store.origin_of(name)
        if source_txid is None:
            raise NameOperationError(
                kind=NameErrorKind.UNKNOWN_REGISTRATION,
                message="Cannot find stored tx hash for name",
            )
        entry = self.store.get(name)
        if entry is None:
            raise NameOperationError(
                kind=NameErrorKind.UNKNOWN_REGISTRATION,
                message="Cannot find stored random value for name",
            )

        self._check_no_pending_operations(name)

        height = self._current_height()
        if not self.availability.is_available(name, height):
            raise NameOperationError(
                kind=NameErrorKind.ALREADY_REGISTERED,
                message="This name is already active",
            )

        source_tx = self._lookup_wallet_transaction(source_txid)
        output_index = self._verify_commitment(source_tx, name, entry.randomness)

        net_fee = self._call(
            lambda: self.chain.network_fee(height),
            NameErrorKind.TRANSACTION_BUILD_FAILED,
            "Read network fee",
        )
        net_fee = round_up_fee(net_fee, self.config.fee_unit)

        script = encode_first_update_payload(
            name, entry.randomness, value, self._reserve_destination_script()
        )
        outputs = [TxOutput(script=script, value=self.config.name_amount)]
        if net_fee:
            outputs.append(TxOutput(script=fee_script(), value=net_fee))

        with self.wallet_lock:
            reveal_tx, required_fee = self._build_spending(
                outputs, source_tx, output_index
            )
            self._call(
                lambda: self.wallet.persist_pending_reveal(
                    name, source_txid, entry.randomness, value, reveal_tx
                ),
                NameErrorKind.TRANSACTION_BUILD_FAILED,
                "Persist pending name_firstupdate",
            )
            updated = self.store.replace_reveal(name, value, reveal_tx)

        logger.info(
            "Automatic name_firstupdate created for name %r, created tx: %s "
            "(network fee %d, transaction fee %d)",
            name,
            reveal_tx.txid,
            net_fee,
            required_fee,
        )
        return updated

    def name_first_update_prepare(
        self, name: str | bytes, data: str | bytes | None = b""
    ) -> OperationResult:
        """Build the reveal for a committed name and keep it until maturity.

        Calling this again with different ``data`` replaces the stored reveal.
        """
        try:
            vch_name = self._validate_name(name)
            value = self._validate_value(data)
        except NameOperationError as e:
            return OperationResult.failure(e)

        with self.chain_lock:
            try:
                self._create_first_update(vch_name, value)
            except NameOperationError as e:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"name_firstupdate prepare failed: {e.message}",
                    name=repr(vch_name),
                    error_kind=e.kind.value,
                )
                return OperationResult.failure(e)
        return OperationResult.success()

    # -- automatic reveal -----------------------------------------------------

    def _drop(self, name: bytes) -> None:
        with self.wallet_lock:
            try:
                self.wallet.erase_pending_reveal(name)
            except Exception as e:
                logger.error("Failed to erase pending reveal for %r: %s", name, e)
        self.store.remove(name)

    def _finalize_one(self, name: bytes, report: FinalizeReport) -> None:
        source_txid = self.store.origin_of(name)
        if source_txid is None:
            logger.warning("Automatic name_firstupdate failed - no tx id for name %r", name)
            self._drop(name)
            report.dropped.append(name)
            return

        with self.wallet_lock:
            try:
                source_tx = self.wallet.lookup_transaction(source_txid)
            except Exception as e:
                logger.warning(
                    "Lookup of %s for name %r failed, retrying later: %s", source_txid, name, e
                )
                report.deferred.append(name)
                return
        if source_tx is None:
            entry = self.store.get(name)
            logger.error(
                "Automatic name_firstupdate failed - no wallet transaction. "
                "Name: %r, rand: %s, prevTx: %s, value: %r",
                name,
                encode_randomness(entry.randomness).hex() if entry else None,
                source_txid,
                entry.data if entry else None,
            )
            self._drop(name)
            report.dropped.append(name)
            return

        try:
            depth = self.chain.confirmation_depth(source_txid)
        except Exception as e:
            logger.warning("Could not read depth of %s, retrying later: %s", source_txid, e)
            report.deferred.append(name)
            return
        if depth < self.config.maturity_depth:
            report.deferred.append(name)
            return

        entry = self.store.get(name)
        if entry is None:
            report.dropped.append(name)
            self._drop(name)
            return

        logger.info("Sending automatic name_firstupdate for name %r", name)
        rand_hex = encode_randomness(entry.randomness).hex()
        try:
            if entry.reveal_tx is None:
                raise NameOperationError(
                    kind=NameErrorKind.BROADCAST_FAILED,
                    message="No name_firstupdate transaction was prepared",
                )
            with self.wallet_lock:
                self._call(
                    lambda: self.wallet.broadcast(entry.reveal_tx),
                    NameErrorKind.BROADCAST_FAILED,
                    "Broadcast name_firstupdate",
                )
        except NameOperationError as e:
            # rand is reported so the user can resubmit by hand, e.g. after a fork
            logger.error(
                "Automatic name_firstupdate failed. Name: %r, rand: %s, prevTx: %s, value: %r (%s)",
                name,
                rand_hex,
                source_txid,
                entry.data,
                e.message,
            )
            report.failed.append(name)
        else:
            logger.info(
                "Automatic name_firstupdate done. Name: %r, rand: %s, prevTx: %s, value: %r",
                name,
                rand_hex,
                source_txid,
                entry.data,
            )
            report.revealed.append(name)

        self._drop(name)

    def finalize_pending_reveals(self, current_height: int | None = None) -> FinalizeReport:
        report = FinalizeReport()
        with self.chain_lock:
            for name in self.store.names():
                try:
                    self._finalize_one(name, report)
                except Exception:
                    logger.exception("Unexpected error finalizing %r", name)
        if report.revealed or report.failed or report.dropped:
            logger.info(
                "Pending reveals at height %s: %d revealed, %d failed, %d dropped, %d waiting",
                current_height,
                len(report.revealed),
                len(report.failed),
                len(report.dropped),
                len(report.deferred),
            )
        return report

    # -- name_update ----------------------------------------------------------

    def name_update(
        self,
        name: str | bytes,
        data: str | bytes | None = b"",
        transfer_to: str | None = None,
    ) -> NameUpdateResult:
        try:
            vch_name = self._validate_name(name)
            value = self._validate_value(data)
            destination = None
            if transfer_to:
                result = AddressValidator.validate(transfer_to)
                if not result.is_valid:
                    raise NameOperationError(
                        kind=NameErrorKind.INVALID_INPUT,
                        message=f"Invalid address: {transfer_to}",
                    )
                destination = result.normalized_value
        except NameOperationError as e:
            return NameUpdateResult(ok=False, error=e)

        with self.chain_lock:
            try:
                self._check_no_pending_operations(vch_name)
                record = self._call(
                    lambda: self.availability.live_record(vch_name),
                    NameErrorKind.TRANSACTION_BUILD_FAILED,
                    "Read name index",
                )
                if record is None:
                    raise NameOperationError(
                        kind=NameErrorKind.NOT_REGISTERED,
                        message="Could not find a coin with this name",
                    )

                with self.wallet_lock:
                    source_tx = self._lookup_wallet_transaction(record.txid)
                    output_index = index_of_name_output(source_tx)
                    if output_index is None:
                        raise NameOperationError(
                            kind=NameErrorKind.PAYLOAD_MISMATCH,
                            message="Previous tx on this name is not a name tx",
                        )
                    if destination is None:
                        destination = self._reserve_destination_script()

                    script = encode_update_payload(vch_name, value, destination)
                    tx, _ = self._build_spending(
                        [TxOutput(script=script, value=self.config.name_amount)],
                        source_tx,
                        output_index,
                    )
                    self._call(
                        lambda: self.wallet.broadcast(tx),
                        NameErrorKind.BROADCAST_FAILED,
                        "Broadcast name_update",
                    )
            except NameOperationError as e:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"name_update failed: {e.message}",
                    name=repr(vch_name),
                    error_kind=e.kind.value,
                )
                return NameUpdateResult(ok=False, error=e)

        log_with_context(
            logger,
            logging.INFO,
            "name_update broadcast",
            name=repr(vch_name),
            txid=tx.txid,
            transfer=bool(transfer_to),
        )
        return NameUpdateResult(ok=True, txid=tx.txid)

    # -- pending state ----------------------------------------------------------

    def restore_pending(self) -> int:
        with self.chain_lock:
            with self.wallet_lock:
                records = self._call(
                    self.wallet.load_pending_reveals,
                    NameErrorKind.NOT_IN_WALLET,
                    "Load pending reveals",
                )
            restored = 0
            for record in records:
                if record.name in self.store:
                    continue
                commitment_hash = compute_commitment_hash(record.randomness, record.name)
                self.store.restore(record, commitment_hash)
                restored += 1
        if restored:
            logger.info("Restored %d pending name registrations", restored)
        return restored

    def pending_names(self) -> list[bytes]:
        with self.chain_lock:
            return self.store.names()

    def get_pending(self, name: str | bytes) -> PendingRegistration | None:
        with self.chain_lock:
            return self.store.get(_coerce_name(name))

    def registration_state(self, name: str | bytes) -> RegistrationState:
        entry = self.get_pending(name)
        if entry is None:
            return RegistrationState.UNREGISTERED
        return entry.state
