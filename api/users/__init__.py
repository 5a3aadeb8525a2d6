"""
The `users` feature: CRUD over the `users` table.
"""

from .router import router

__all__ = ["router"]
