"""
Dashboard Services

Domain logic behind the Flask routes.
"""

from .supply_chain import SupplyChainStore

__all__ = ["SupplyChainStore"]
