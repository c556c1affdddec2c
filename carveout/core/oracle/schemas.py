"""Pydantic schemas for oracle responses, one per prompt template.

A response that does not validate against its schema is a SchemaError
judgment; nothing unvalidated flows downstream.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

CHANGE_SEPARATOR = "->>"


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── identify-bounded-contexts ─────────────────────────────────────────

class DomainEventSchema(_Schema):
    name: str = Field(..., min_length=1)
    aggregate_root: str = Field("", alias="aggregateRoot")
    payload: List[str] = Field(default_factory=list)


class BoundedContextSchema(_Schema):
    name: str = Field(..., min_length=1)
    description: str = ""
    aggregate_roots: List[str] = Field(default_factory=list, alias="aggregateRoots")
    entities: List[str] = Field(default_factory=list)
    value_objects: List[str] = Field(default_factory=list, alias="valueObjects")
    repositories: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    domain_events: List[DomainEventSchema] = Field(
        default_factory=list,
        validation_alias=AliasChoices("domainEvents", "relationships", "domain_events"),
    )


class BoundedContextListSchema(_Schema):
    bounded_contexts: List[BoundedContextSchema] = Field(..., alias="boundedContexts")


# ── microservice-candidate-design ─────────────────────────────────────

class ApiSchema(_Schema):
    path: str = Field(..., min_length=1)
    method: Optional[str] = None


class InteractionSchema(_Schema):
    name: str = Field(..., min_length=1)
    type: str = ""


class MicroserviceSchema(_Schema):
    name: str = Field(..., min_length=1)
    apis: List[ApiSchema] = Field(default_factory=list)
    interactions: List[InteractionSchema] = Field(
        default_factory=list,
        validation_alias=AliasChoices("events", "interactions"),
    )
    dependencies: List[str] = Field(default_factory=list)


class MicroserviceResponseSchema(_Schema):
    microservice: MicroserviceSchema


# ── refactor-class ────────────────────────────────────────────────────

class CodeEditSchema(_Schema):
    old_code: str = Field(..., min_length=1, alias="oldCode")
    new_code: str = Field(..., alias="newCode")


class RefactoringSchema(_Schema):
    new_location: str = Field(..., min_length=1, alias="newLocation")
    steps: List[CodeEditSchema] = Field(default_factory=list)


class RefactorPlanSchema(_Schema):
    refactoring: RefactoringSchema


# ── dependency-update ─────────────────────────────────────────────────

class ReferenceUpdateSchema(_Schema):
    code_changes: List[str] = Field(default_factory=list, alias="codeChanges")

    @field_validator("code_changes")
    @classmethod
    def _changes_have_separator(cls, changes: List[str]) -> List[str]:
        for change in changes:
            old, sep, _ = change.partition(CHANGE_SEPARATOR)
            if not sep or not old.strip():
                raise ValueError(f"Code change must read 'old {CHANGE_SEPARATOR} new': {change!r}")
        return changes

    def substitutions(self) -> List[tuple]:
        """(old, new) pairs, whitespace around the separator trimmed."""
        pairs = []
        for change in self.code_changes:
            old, _, new = change.partition(CHANGE_SEPARATOR)
            pairs.append((old.strip(), new.strip()))
        return pairs


class DependencyUpdateSchema(_Schema):
    updates: List[ReferenceUpdateSchema]
