"""
Operational tools for kvorm.

Available tools:
- store_cli: Inspect and repair data under the kvorm key scheme
"""

from .store_cli import StoreCLI

__all__ = ["StoreCLI"]
