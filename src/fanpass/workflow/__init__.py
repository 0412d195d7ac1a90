"""Ticketing workflows - purchases, redemption, credentials and reputation."""

from fanpass.workflow.purchase import PurchaseWorkflow, build_credential_subject
from fanpass.workflow.reputation import CredentialRecorder, reputation_delta

__all__ = [
    "PurchaseWorkflow",
    "build_credential_subject",
    "CredentialRecorder",
    "reputation_delta",
]
