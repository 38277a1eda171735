"""Membership records and the graph vocabulary they map onto."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(str, Enum):
    """Node type tags, persisted as labels."""

    THING = "Thing"
    CONCEPT = "Concept"
    MEMBERSHIP = "Membership"


class IdentifierKind(str, Enum):
    """Identifier node type tags, persisted as labels next to 'Identifier'."""

    FACTSET = "FactsetIdentifier"
    UPP = "UPPIdentifier"


class RelKind(str, Enum):
    """Relationship types."""

    HAS_MEMBER = "HAS_MEMBER"
    HAS_ORGANISATION = "HAS_ORGANISATION"
    HAS_ROLE = "HAS_ROLE"
    IDENTIFIES = "IDENTIFIES"


IDENTIFIER_LABEL = "Identifier"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Role(_WireModel):
    """A role held within a membership, with optional validity dates."""

    role_uuid: str = Field(..., alias="roleuuid", description="UUID of the role Thing")
    inception_date: str | None = Field(default=None, alias="inceptionDate")
    termination_date: str | None = Field(default=None, alias="terminationDate")


class AlternativeIdentifiers(_WireModel):
    """External-system identifiers for a membership."""

    factset_identifier: str | None = Field(default=None, alias="factsetIdentifier")
    uuids: list[str] = Field(default_factory=list, description="Other-system identifier values")


class Membership(_WireModel):
    """A person holding roles at an organisation."""

    uuid: str = Field(..., min_length=1)
    pref_label: str | None = Field(default=None, alias="prefLabel")
    person_uuid: str | None = Field(default=None, alias="personUuid")
    organisation_uuid: str = Field(..., alias="organisationUuid")
    inception_date: str | None = Field(default=None, alias="inceptionDate")
    termination_date: str | None = Field(default=None, alias="terminationDate")
    alternative_identifiers: AlternativeIdentifiers = Field(
        default_factory=AlternativeIdentifiers, alias="alternativeIdentifiers"
    )
    membership_roles: list[Role] = Field(default_factory=list, alias="membershipRoles")

    def to_wire(self) -> dict:
        """Serialize with wire field names, omitting empty optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)
