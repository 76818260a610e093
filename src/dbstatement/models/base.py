"""Shared base model definitions for dbstatement value objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DbStatementBaseModel(BaseModel):
    """Immutable, strictly validated base model."""

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)


__all__ = ["DbStatementBaseModel"]
