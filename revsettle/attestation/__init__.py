"""
revsettle Attestations - revenue attestations and their dynamic fees.
"""

from revsettle.attestation.fees import FeeEngine, build_brackets, compute_fee
from revsettle.attestation.registry import AttestationRegistry

__all__ = ["AttestationRegistry", "FeeEngine", "build_brackets", "compute_fee"]
