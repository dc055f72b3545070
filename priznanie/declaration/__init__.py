"""Declaration data model and input helpers."""

from priznanie.declaration.models import Declaration, coerce_declaration

__all__ = ["Declaration", "coerce_declaration"]
