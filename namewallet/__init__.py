"""namewallet - client-side name registration for a Namecoin-style chain.

This package is organized into feature-based modules:
- features.names: commit-reveal registration, updates and transfers
- features.monitoring: wallet state polling and automatic reveals
- shared: Shared utilities (network, logging, configuration)
"""

from namewallet.chain import RpcChainIndex
from namewallet.features.monitoring import WalletStateMonitor
from namewallet.features.names import (
    NameErrorKind,
    NameOperationError,
    NameRegistrationService,
    RegistrationState,
)
from namewallet.shared import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)
from namewallet.shared.config import RegistrationConfig

__version__ = "0.1.0"
__all__ = [
    "NameRegistrationService",
    "WalletStateMonitor",
    "RpcChainIndex",
    "RegistrationConfig",
    "RegistrationState",
    "NameErrorKind",
    "NameOperationError",
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "RetryConfig",
    "TimeoutConfig",
]
