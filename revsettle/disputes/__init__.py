"""
revsettle Disputes - challenges against stored attestations.
"""

from revsettle.disputes.lifecycle import DisputeRegistry
from revsettle.disputes.policy import ArbiterPolicy

__all__ = ["DisputeRegistry", "ArbiterPolicy"]
