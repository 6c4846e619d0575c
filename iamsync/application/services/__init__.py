"""Application services: provisioning, event correlation and the default stack."""

from iamsync.application.services.correlation_ledger import CorrelationLedger
from iamsync.application.services.default_stack import default_groups, default_stack
from iamsync.application.services.event_correlator import EventCorrelator
from iamsync.application.services.provisioner import Provisioner, validate_desired_state

__all__ = [
    "CorrelationLedger",
    "EventCorrelator",
    "Provisioner",
    "default_groups",
    "default_stack",
    "validate_desired_state",
]
