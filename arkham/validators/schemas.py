"""
arkham/validators/schemas.py - Pydantic record models

Shape checks for the optional parts of a scenario document that are
validated record by record: characters, resources and the viewport.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr


class CharacterRecord(BaseModel):
    """A character entry; id, type and name must be strings."""

    model_config = ConfigDict(extra="allow")

    id: StrictStr = Field(..., description="Character id referenced by character nodes")
    type: StrictStr = Field(..., description="Person, Participant, Monster or Other")
    name: StrictStr = Field(..., description="Display name")
    description: Optional[Any] = Field(None, description="Free text")


class ResourceRecord(BaseModel):
    """A resource entry; id, type and name must be strings."""

    model_config = ConfigDict(extra="allow")

    id: StrictStr = Field(..., description="Resource id referenced by resource and element nodes")
    type: StrictStr = Field(..., description="Item, Equipment, Knowledge, Skill or Status")
    name: StrictStr = Field(..., description="Display name, also the game-state key")
    description: Optional[Any] = Field(None, description="Free text")


class ViewportRecord(BaseModel):
    """Saved canvas viewport."""

    x: StrictFloat
    y: StrictFloat
    zoom: StrictFloat
