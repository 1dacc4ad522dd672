"""
Shared Pydantic models for the resolution layers.
Schema data is immutable (frozen) after creation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


# ─── Schema Layer ──────────────────────────────────────────────

class ParameterSlot(BaseModel):
    """A named, typed parameter expected to be resolved from a statement.

    `values` / `entityfunction` are accepted as aliases so schema files written
    for the classifier catalog load unchanged.
    """
    model_config = {"frozen": True, "populate_by_name": True}

    name: str = Field(..., description="Unique slot name within the schema")
    type: str = Field(..., description="Dispatch key into the TypeHandlerRegistry")
    required: bool = Field(default=True)
    static_values: list[str] | None = Field(
        default=None,
        alias="values",
        description="Fixed candidate list declared by the schema",
    )
    value_supplier: str | None = Field(
        default=None,
        alias="entityfunction",
        description="Name of a registered dynamic value supplier",
    )
    prompt: str | None = Field(default=None, description="Prompt used for the first ask")
    title: str | None = Field(default=None, description="Display name used in generated prompts")

    @field_validator("name", "type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def display_name(self) -> str:
        return self.title or self.name


class SchemaDefinition(BaseModel):
    """A schema (classifier class) with its ordered slots and seed sentences."""
    model_config = {"frozen": True}

    name: str
    description: str = Field(default="")
    parameters: list[ParameterSlot] = Field(default_factory=list)
    seed_texts: list[str] = Field(
        default_factory=list,
        description="Example sentences the classifier was trained on for this schema",
    )

    @field_validator("parameters")
    @classmethod
    def _unique_names(cls, parameters: list[ParameterSlot]) -> list[ParameterSlot]:
        names = [slot.name for slot in parameters]
        if len(set(names)) != len(names):
            raise ValueError("parameter names must be unique within a schema")
        return parameters


# ─── Decoding Layer ────────────────────────────────────────────

class NamedEntity(BaseModel):
    """Entity returned by the named-entity service."""
    model_config = {"frozen": True}

    type: str
    text: str
    relevance: float = Field(default=0.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


# ─── Matching Layer ────────────────────────────────────────────

class FuzzyCandidate(BaseModel):
    """A candidate from the value universe with its best fuzzy score (lower is better)."""
    model_config = {"frozen": True}

    index: int = Field(..., ge=0, description="Position in the candidate universe")
    value: str
    score: float = Field(..., ge=0.0, le=1.0)
