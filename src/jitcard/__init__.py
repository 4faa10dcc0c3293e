"""Marqeta JIT funding demo: virtual card setup and simulated payments."""

from .client import MarqetaClient
from .config import JitCardSettings, load_settings
from .dispatcher import CommandDispatcher
from .exceptions import (
    CardNotFoundError,
    CommandValidationError,
    ConnectivityError,
    InvalidPinError,
    JitCardError,
    SetupFailedError,
    UpstreamError,
    UpstreamUnavailableError,
)
from .money import Cents, Dollars
from .provisioning import SetupFailure, SetupOrchestrator, SetupSuccess
from .registry import RegistrySnapshot, ResourceRegistry
from .transactions import PaymentResult, SimulationResult, TransactionOrchestrator

__version__ = "0.1.0"

__all__ = [
    "CardNotFoundError",
    "Cents",
    "CommandDispatcher",
    "CommandValidationError",
    "ConnectivityError",
    "Dollars",
    "InvalidPinError",
    "JitCardError",
    "JitCardSettings",
    "MarqetaClient",
    "PaymentResult",
    "RegistrySnapshot",
    "ResourceRegistry",
    "SetupFailedError",
    "SetupFailure",
    "SetupOrchestrator",
    "SetupSuccess",
    "SimulationResult",
    "TransactionOrchestrator",
    "UpstreamError",
    "UpstreamUnavailableError",
    "load_settings",
]
