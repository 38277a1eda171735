"""Membership Repository for memberships-rw.

Maps Membership records onto the graph and back.

Graph shape:
- (m:Thing:Concept:Membership {uuid, prefLabel, inceptionDate[Epoch], terminationDate[Epoch]})
- (m)-[:HAS_ORGANISATION]->(o:Thing), exactly one
- (m)-[:HAS_MEMBER]->(p:Thing), at most one
- (m)-[:HAS_ROLE {inceptionDate[Epoch], terminationDate[Epoch]}]->(r:Thing), any number
- (i:Identifier:FactsetIdentifier|UPPIdentifier {value})-[:IDENTIFIES]->(m)

Every write drops and rebuilds the membership's edges and identifiers in one
batch; nothing is diffed against the stored state.
"""

from typing import IO, Any

from pydantic import ValidationError

from memberships_rw.db.query_protocol import CypherStatement, QueryRunner
from memberships_rw.errors import DecodeError, InvalidRequestError
from memberships_rw.log_config import get_logger, log_timing
from memberships_rw.memberships.dates import add_date_to_params
from memberships_rw.memberships.model import (
    IDENTIFIER_LABEL,
    IdentifierKind,
    Membership,
    NodeKind,
    RelKind,
)

log = get_logger("memberships.repository")

THING = NodeKind.THING.value
CONCEPT = NodeKind.CONCEPT.value
MEMBERSHIP = NodeKind.MEMBERSHIP.value
HAS_MEMBER = RelKind.HAS_MEMBER.value
HAS_ORGANISATION = RelKind.HAS_ORGANISATION.value
HAS_ROLE = RelKind.HAS_ROLE.value
IDENTIFIES = RelKind.IDENTIFIES.value

# Uniqueness constraints: label -> property
CONSTRAINTS = {
    THING: "uuid",
    CONCEPT: "uuid",
    MEMBERSHIP: "uuid",
    IdentifierKind.FACTSET.value: "value",
    IdentifierKind.UPP.value: "value",
}

READ_QUERY = f"""
    MATCH (m:{MEMBERSHIP} {{uuid: $uuid}})-[:{HAS_ORGANISATION}]->(o:{THING})
    OPTIONAL MATCH (m)-[:{HAS_MEMBER}]->(p:{THING})
    OPTIONAL MATCH (m)-[rr:{HAS_ROLE}]->(r:{THING})
    WITH m, o, p, collect({{roleuuid: r.uuid, inceptionDate: rr.inceptionDate, terminationDate: rr.terminationDate}}) AS membershipRoles
    OPTIONAL MATCH (m)<-[:{IDENTIFIES}]-(upp:{IdentifierKind.UPP.value})
    WITH m, o, p, membershipRoles, collect(DISTINCT upp.value) AS uuids
    OPTIONAL MATCH (m)<-[:{IDENTIFIES}]-(fs:{IdentifierKind.FACTSET.value})
    WITH m, o, p, membershipRoles, uuids, head(collect(fs.value)) AS factsetIdentifier
    RETURN
        m.uuid AS uuid,
        m.prefLabel AS prefLabel,
        m.inceptionDate AS inceptionDate,
        m.terminationDate AS terminationDate,
        o.uuid AS organisationUuid,
        p.uuid AS personUuid,
        membershipRoles,
        {{uuids: uuids, factsetIdentifier: factsetIdentifier}} AS alternativeIdentifiers
"""

DELETE_IDENTIFIERS_QUERY = f"""
    MATCH (t:{THING} {{uuid: $uuid}})
    OPTIONAL MATCH (t)<-[iden:{IDENTIFIES}]-(i)
    DELETE iden, i
"""

DELETE_ENTITY_RELS_QUERY = f"""
    MATCH (m:{THING} {{uuid: $uuid}})
    OPTIONAL MATCH (m)-[rel:{HAS_MEMBER}|{HAS_ORGANISATION}]->(:{THING})
    DELETE rel
"""

# Label interpolation is limited to IdentifierKind values
CREATE_IDENTIFIER_QUERIES = {
    kind: f"""
    MERGE (t:{THING} {{uuid: $uuid}})
    CREATE (i:{IDENTIFIER_LABEL}:{kind.value} {{value: $value}})
    MERGE (t)<-[:{IDENTIFIES}]-(i)
    """
    for kind in IdentifierKind
}

UPSERT_MEMBERSHIP_QUERY = f"""
    MERGE (m:{THING} {{uuid: $uuid}})
    MERGE (p:{THING} {{uuid: $personUuid}})
    MERGE (o:{THING} {{uuid: $organisationUuid}})
    CREATE (m)-[:{HAS_MEMBER}]->(p)
    CREATE (m)-[:{HAS_ORGANISATION}]->(o)
    SET m = $allprops
    SET m:{CONCEPT}:{MEMBERSHIP}
"""

UPSERT_MEMBERSHIP_NO_PERSON_QUERY = f"""
    MERGE (m:{THING} {{uuid: $uuid}})
    MERGE (o:{THING} {{uuid: $organisationUuid}})
    CREATE (m)-[:{HAS_ORGANISATION}]->(o)
    SET m = $allprops
    SET m:{CONCEPT}:{MEMBERSHIP}
"""

DELETE_ROLE_RELS_QUERY = f"""
    MATCH (m:{THING} {{uuid: $uuid}})
    OPTIONAL MATCH (m)-[rr:{HAS_ROLE}]->(:{THING})
    DELETE rr
"""

CREATE_ROLE_QUERY = f"""
    MERGE (m:{THING} {{uuid: $uuid}})
    MERGE (r:{THING} {{uuid: $roleUuid}})
    CREATE (m)-[rel:{HAS_ROLE}]->(r)
    SET rel = $roleProps
"""

CLEAR_NODE_QUERY = f"""
    MATCH (m:{THING} {{uuid: $uuid}})
    REMOVE m:{CONCEPT}
    REMOVE m:{MEMBERSHIP}
    SET m = $props
    WITH m
    OPTIONAL MATCH (m)-[rel:{HAS_MEMBER}|{HAS_ORGANISATION}|{HAS_ROLE}]->(:{THING})
    DELETE rel
"""

REMOVE_NODE_IF_UNUSED_QUERY = f"""
    MATCH (m:{THING} {{uuid: $uuid}})
    OPTIONAL MATCH (m)-[a]-(x)
    WITH m, count(a) AS relCount
    WHERE relCount = 0
    DELETE m
"""

COUNT_QUERY = f"MATCH (n:{MEMBERSHIP}) RETURN count(n) AS c"


class MembershipRepository:
    """Repository for Membership nodes.

    Implements the read-write service capabilities (initialise, read, write,
    delete, count, check, decode_json) on top of a QueryRunner. Each call
    submits exactly one batch; retries and timeouts are left to the runner.
    """

    def __init__(self, runner: QueryRunner):
        """Initialize MembershipRepository.

        Args:
            runner: Query runner for the target graph database
        """
        self.runner = runner

    def initialise(self) -> None:
        """Ensure uniqueness constraints for memberships and identifiers."""
        self.runner.ensure_constraints(dict(CONSTRAINTS))

    # =========================================================================
    # Read
    # =========================================================================

    def read(self, uuid: str) -> tuple[Membership | None, bool]:
        """Read a membership by uuid.

        A membership without a HAS_ORGANISATION edge is not found.

        Returns:
            (membership, True) if found, (None, False) otherwise
        """
        statement = CypherStatement(READ_QUERY, {"uuid": uuid}, name="read_membership")
        [result] = self.runner.run_batch([statement])

        rows = list(result.records())
        if not rows:
            return None, False

        row = rows[0]
        log.debug(f"Returning membership {uuid}: {row}")

        # The role OPTIONAL MATCH yields one all-null entry when there are no roles
        roles = row.get("membershipRoles") or []
        if len(roles) == 1 and not roles[0].get("roleuuid"):
            roles = []
        row["membershipRoles"] = roles

        return Membership.model_validate(row), True

    # =========================================================================
    # Write
    # =========================================================================

    def write(self, membership: Membership) -> None:
        """Replace the stored membership with this one.

        Raises:
            InvalidRequestError: If uuid is missing or a date does not parse
                (nothing is sent to the database in that case)
            QueryRunnerError: If the batch fails
        """
        statements = self._write_statements(membership)
        log.debug(f"Writing membership {membership.uuid}: {len(statements)} statements")
        with log_timing(f"write {membership.uuid}", log):
            self.runner.run_batch(statements)

    def _write_statements(self, m: Membership) -> list[CypherStatement]:
        if not m.uuid:
            raise InvalidRequestError("membership uuid is required")

        # Parse every date up front so a bad one aborts before submission
        props: dict[str, Any] = {"uuid": m.uuid}
        if m.pref_label:
            props["prefLabel"] = m.pref_label
        add_date_to_params(props, "inceptionDate", m.inception_date)
        add_date_to_params(props, "terminationDate", m.termination_date)

        role_props = []
        for role in m.membership_roles:
            rel_props: dict[str, Any] = {}
            add_date_to_params(rel_props, "inceptionDate", role.inception_date)
            add_date_to_params(rel_props, "terminationDate", role.termination_date)
            role_props.append((role.role_uuid, rel_props))

        statements = [
            CypherStatement(DELETE_IDENTIFIERS_QUERY, {"uuid": m.uuid}, name="delete_identifiers"),
            CypherStatement(DELETE_ENTITY_RELS_QUERY, {"uuid": m.uuid}, name="delete_entity_rels"),
        ]

        identifiers = m.alternative_identifiers
        if identifiers.factset_identifier:
            log.debug("Creating FactsetIdentifier statement")
            statements.append(
                self._identifier_statement(m.uuid, IdentifierKind.FACTSET, identifiers.factset_identifier)
            )

        for alternative_uuid in identifiers.uuids:
            statements.append(self._identifier_statement(m.uuid, IdentifierKind.UPP, alternative_uuid))

        upsert_params = {
            "uuid": m.uuid,
            "organisationUuid": m.organisation_uuid,
            "allprops": props,
        }
        if m.person_uuid:
            upsert_params["personUuid"] = m.person_uuid
            upsert_query = UPSERT_MEMBERSHIP_QUERY
        else:
            upsert_query = UPSERT_MEMBERSHIP_NO_PERSON_QUERY
        statements.append(CypherStatement(upsert_query, upsert_params, name="upsert_membership"))

        statements.append(CypherStatement(DELETE_ROLE_RELS_QUERY, {"uuid": m.uuid}, name="delete_role_rels"))

        for role_uuid, rel_props in role_props:
            statements.append(
                CypherStatement(
                    CREATE_ROLE_QUERY,
                    {"uuid": m.uuid, "roleUuid": role_uuid, "roleProps": rel_props},
                    name="create_role",
                )
            )

        return statements

    @staticmethod
    def _identifier_statement(uuid: str, kind: IdentifierKind, value: str) -> CypherStatement:
        return CypherStatement(
            CREATE_IDENTIFIER_QUERIES[kind],
            {"uuid": uuid, "value": value},
            name=f"create_{kind.value}",
        )

    # =========================================================================
    # Delete / Count / Check
    # =========================================================================

    def delete(self, uuid: str) -> bool:
        """Strip a membership and remove its node if nothing else uses it.

        Returns:
            True if the node carried the Membership/Concept labels before the
            call. Whether the node was physically removed is not reported.
        """
        clear_node = CypherStatement(
            CLEAR_NODE_QUERY,
            {"uuid": uuid, "props": {"uuid": uuid}},
            name="clear_membership",
            include_stats=True,
        )
        remove_node_if_unused = CypherStatement(
            REMOVE_NODE_IF_UNUSED_QUERY,
            {"uuid": uuid},
            name="remove_node_if_unused",
        )

        results = self.runner.run_batch([clear_node, remove_node_if_unused])

        stats = results[0].stats or {}
        deleted = bool(stats.get("contains_updates")) and stats.get("labels_removed", 0) > 0
        log.debug(f"Delete {uuid}: deleted={deleted} stats={stats}")
        return deleted

    def count(self) -> int:
        """Return the number of Membership nodes."""
        [result] = self.runner.run_batch([CypherStatement(COUNT_QUERY, name="count_memberships")])
        rows = list(result.records())
        return int(rows[0]["c"]) if rows else 0

    def check(self) -> None:
        """Delegate to the runner's connectivity probe."""
        self.runner.check()

    # =========================================================================
    # Decoding
    # =========================================================================

    def decode_json(self, stream: IO[str] | IO[bytes] | str | bytes) -> tuple[Membership, str]:
        """Decode one membership payload.

        Args:
            stream: File-like object or raw JSON text/bytes

        Returns:
            (membership, uuid)

        Raises:
            DecodeError: If the payload is not a valid membership
        """
        payload = stream.read() if hasattr(stream, "read") else stream
        try:
            membership = Membership.model_validate_json(payload)
        except (ValidationError, ValueError) as e:
            raise DecodeError(_describe_decode_error(e)) from e
        return membership, membership.uuid


def _describe_decode_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        problems = [
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in error.errors()
        ]
        return "; ".join(problems)
    return str(error)


__all__ = ["MembershipRepository", "CONSTRAINTS"]
