"""
models/__init__.py
------------------
Re-export the conversation models so callers can use a single import:

    from app.models import Message, MessageRole, TenantHistory
"""

from app.models.message import Message, MessageRole, TenantHistory, utcnow

__all__ = ["Message", "MessageRole", "TenantHistory", "utcnow"]
