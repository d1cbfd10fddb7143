"""Reconciliation result schema."""

from __future__ import annotations

from pydantic import BaseModel


class ReconcileResult(BaseModel):
    reconciled: int = 0
    skipped: int = 0
    errors: list[str] = []

