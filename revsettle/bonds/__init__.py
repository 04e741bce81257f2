"""
revsettle Bonds - revenue-backed bonds and per-period redemption.
"""

from revsettle.bonds.redemption import RedemptionEngine, calculate_redemption
from revsettle.bonds.registry import BondRegistry

__all__ = ["BondRegistry", "RedemptionEngine", "calculate_redemption"]
