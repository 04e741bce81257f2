"""
revsettle Runtime - deploy and initialize a full settlement stack.
"""

from revsettle.runtime.context import RuntimeContext

__all__ = ["RuntimeContext"]
