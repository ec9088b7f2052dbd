"""
Core Module

Contiene el contexto de aplicación y dependency injection.
"""

from farmtech.core.context import AppContext

__all__ = ["AppContext"]
