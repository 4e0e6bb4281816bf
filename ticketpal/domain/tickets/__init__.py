"""
Tickets Domain

Ticket CRUD, price increases, timeline lookups and challenge submission.
"""

from .router import router

__all__ = ["router"]
