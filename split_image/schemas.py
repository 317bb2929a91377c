"""Pydantic DTOs for the batch-record skill envelope."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SkillRequestRecord(BaseModel):
    """One input record; ``data`` carries ``imageLocation`` and optional ``sasToken``."""

    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(alias="recordId")
    data: dict[str, Any] = Field(default_factory=dict)


class SkillRequest(BaseModel):
    """Batch of records submitted by the indexing pipeline."""

    values: list[SkillRequestRecord]


class SkillMessage(BaseModel):
    message: str


class SplitImageEntry(BaseModel):
    """File reference for one tile, in the ``$type: file`` shape indexers expect."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["file"] = Field(default="file", alias="$type")
    data: str = Field(description="Base64-encoded JPEG payload")
    width: int = Field(ge=1)
    height: int = Field(ge=1)


class SkillResponseRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(alias="recordId")
    data: dict[str, Any] = Field(default_factory=dict)
    errors: list[SkillMessage] = Field(default_factory=list)
    warnings: list[SkillMessage] = Field(default_factory=list)


class SkillResponse(BaseModel):
    """Response envelope; records keep the order of the request."""

    values: list[SkillResponseRecord]
