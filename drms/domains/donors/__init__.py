"""
Donor module

Donor profiles, commitments and commitment usage by responses.
"""

from .models import Donor, DonorCommitment
from .service import DonorService, CommitmentService
from .router import router as donors_router, commitments_router

__all__ = [
    "Donor",
    "DonorCommitment",
    "DonorService",
    "CommitmentService",
    "donors_router",
    "commitments_router",
]
