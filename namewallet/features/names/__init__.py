"""Name registration feature module.

Usage:
    from namewallet.features.names import NameRegistrationService
    from namewallet.features.names import PendingRegistrationStore, EncryptedRevealJournal
"""

from namewallet.features.names.availability import NameAvailabilityChecker
from namewallet.features.names.codec import (
    NameOperation,
    NameScript,
    compute_commitment_hash,
    decode_payload,
    encode_first_update_payload,
    encode_new_payload,
    encode_update_payload,
)
from namewallet.features.names.errors import (
    MalformedPayload,
    NameErrorKind,
    NameOperationError,
    TransactionBuildError,
)
from namewallet.features.names.models import (
    FinalizeReport,
    NameNewResult,
    NameUpdateResult,
    OperationResult,
    OwnershipRecord,
    PendingRegistration,
    PersistedReveal,
    RegistrationState,
    Transaction,
    TxOutput,
)
from namewallet.features.names.service import NameRegistrationService
from namewallet.features.names.store import (
    EncryptedRevealJournal,
    PendingRegistrationStore,
)
from namewallet.features.names.validators import (
    AddressValidator,
    NameValidator,
    ValidationResult,
)

__all__ = [
    "NameRegistrationService",
    "NameAvailabilityChecker",
    "PendingRegistrationStore",
    "EncryptedRevealJournal",
    "NameOperation",
    "NameScript",
    "compute_commitment_hash",
    "decode_payload",
    "encode_new_payload",
    "encode_first_update_payload",
    "encode_update_payload",
    "NameErrorKind",
    "NameOperationError",
    "MalformedPayload",
    "TransactionBuildError",
    "FinalizeReport",
    "NameNewResult",
    "NameUpdateResult",
    "OperationResult",
    "OwnershipRecord",
    "PendingRegistration",
    "PersistedReveal",
    "RegistrationState",
    "Transaction",
    "TxOutput",
    "AddressValidator",
    "NameValidator",
    "ValidationResult",
]
