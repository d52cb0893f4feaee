"""
Change-Detection Updater
Diff an incoming nested aggregate against its persisted snapshot and apply
the minimal set of INSERT and UPDATE statements in one transaction.

Rules per node:
- no id: new, inserted with a fresh id and creation time; its own children
  are inserted as new as well
- id present in the snapshot under the same parent: updated only if a
  content field differs
- id not in the snapshot: skipped (reported in the plan, never written)

Children missing from the payload are left alone; only explicit deletes
remove rows.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import Table, bindparam, delete, insert, select, update
from sqlalchemy.engine import Connection

from ..db.session import Database
from ..errors import ConcurrentModificationError, NotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NodeSpec:
    """
    Shape of one level of an aggregate.

    Attributes:
        name: Node name used in plans and logs
        table: Table holding the node's rows (identity column ``id``)
        fields: Content fields compared and written
        parent_key: Column referencing the parent's id (None for the root)
        children: (attribute, spec) pairs for owned child collections
        order_by: Columns children are loaded in
        version_field: Root column used for optimistic concurrency
    """

    name: str
    table: Table
    fields: Tuple[str, ...]
    parent_key: Optional[str] = None
    children: Tuple[Tuple[str, "NodeSpec"], ...] = ()
    order_by: Tuple[str, ...] = ()
    version_field: Optional[str] = None

    def walk(self) -> Iterator["NodeSpec"]:
        yield self
        for _, child in self.children:
            yield from child.walk()

    def stamps(self, *columns: str) -> Dict[str, bool]:
        return {c: c in self.table.c for c in columns}


@dataclass
class Snapshot:
    """Persisted state of one node and its loaded children."""

    id: Any
    values: Dict[str, Any]
    children: Dict[str, Dict[Any, "Snapshot"]] = field(default_factory=dict)


class MutationKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class Mutation:
    """One statement to execute."""

    kind: MutationKind
    node: str
    identity: Any
    values: Dict[str, Any]
    expected_version: Optional[int] = None


@dataclass
class MutationPlan:
    """Statements for one aggregate, plus identities that were skipped."""

    root_id: Any
    mutations: List[Mutation] = field(default_factory=list)
    skipped: List[Tuple[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.mutations)

    def is_empty(self) -> bool:
        return not self.mutations

    def of(self, kind: MutationKind, node: Optional[str] = None) -> List[Mutation]:
        return [m for m in self.mutations if m.kind is kind and (node is None or m.node == node)]

    def inserts(self, node: Optional[str] = None) -> List[Mutation]:
        return self.of(MutationKind.INSERT, node)

    def updates(self, node: Optional[str] = None) -> List[Mutation]:
        return self.of(MutationKind.UPDATE, node)


class AggregateUpdater:
    """
    Applies nested aggregates with change detection.

    Example:
        updater = AggregateUpdater(database, SECTION_SPEC)
        plan = updater.update(section)
    """

    def __init__(
        self,
        database: Database,
        spec: NodeSpec,
        id_factory: Callable[[], Any] = uuid.uuid4,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize updater.

        Args:
            database: Unit of work provider
            spec: Root node spec
            id_factory: Allocates identities for new nodes
            clock: Supplies creation and update timestamps
        """
        self.database = database
        self.spec = spec
        self.id_factory = id_factory
        self.clock = clock
        self.nodes: Dict[str, NodeSpec] = {node.name: node for node in spec.walk()}

    # Snapshot loading

    def fetch_snapshot(self, conn: Connection, root_id: Any) -> Optional[Snapshot]:
        """
        Load the persisted aggregate (root, children, grandchildren).

        Returns:
            Snapshot, or None if the root does not exist
        """
        table = self.spec.table
        stmt = select(table).where(
            table.c.id == bindparam("root_id", root_id, type_=table.c.id.type)
        )
        row = conn.execute(stmt).mappings().first()
        if row is None:
            return None

        root = Snapshot(id=row["id"], values=dict(row))
        self._load_children(conn, self.spec, {root.id: root})
        return root

    def _load_children(
        self, conn: Connection, spec: NodeSpec, parents: Dict[Any, Snapshot]
    ) -> None:
        for attribute, child in spec.children:
            for parent in parents.values():
                parent.children[attribute] = {}
            if not parents:
                continue

            table = child.table
            fk = table.c[child.parent_key]
            param = bindparam(
                f"{child.name}_parents", list(parents), expanding=True, type_=fk.type
            )
            stmt = select(table).where(fk.in_(param))
            stmt = stmt.order_by(*[table.c[c] for c in child.order_by], table.c.id)

            loaded: Dict[Any, Snapshot] = {}
            for row in conn.execute(stmt).mappings():
                node = Snapshot(id=row["id"], values=dict(row))
                parents[row[child.parent_key]].children[attribute][node.id] = node
                loaded[node.id] = node

            self._load_children(conn, child, loaded)

    # Planning (no I/O)

    def _diff(self, spec: NodeSpec, node: Any, current: Snapshot) -> Dict[str, Any]:
        changes = {}
        for name in spec.fields:
            value = getattr(node, name)
            if value != current.values.get(name):
                changes[name] = value
        return changes

    def _plan_insert(
        self, spec: NodeSpec, node: Any, parent_id: Any, plan: MutationPlan, now: datetime
    ) -> Any:
        new_id = self.id_factory()
        values = {"id": new_id}
        values.update({name: getattr(node, name) for name in spec.fields})
        if spec.parent_key:
            values[spec.parent_key] = parent_id
        # Offset by position so siblings created together keep payload order
        stamp = now + timedelta(microseconds=len(plan.mutations))
        for column, present in spec.stamps("created_at", "updated_at").items():
            if present:
                values[column] = stamp
        if spec.version_field:
            values[spec.version_field] = 1

        plan.mutations.append(Mutation(MutationKind.INSERT, spec.name, new_id, values))

        # Children of a new node are new, whatever ids they carry
        for attribute, child in spec.children:
            for child_node in getattr(node, attribute, None) or []:
                self._plan_insert(child, child_node, new_id, plan, now)
        return new_id

    def _plan_children(
        self, spec: NodeSpec, node: Any, current: Snapshot, plan: MutationPlan, now: datetime
    ) -> None:
        for attribute, child in spec.children:
            existing = current.children.get(attribute, {})
            for child_node in getattr(node, attribute, None) or []:
                child_id = getattr(child_node, "id", None)

                if child_id is None:
                    self._plan_insert(child, child_node, current.id, plan, now)
                    continue

                snapshot = existing.get(child_id)
                if snapshot is None:
                    logger.warning(
                        f"Skipping {child.name} {child_id}: not part of {spec.name} {current.id}",
                        extra={"node": child.name, "id": str(child_id), "parent": str(current.id)},
                    )
                    plan.skipped.append((child.name, child_id))
                    continue

                changes = self._diff(child, child_node, snapshot)
                if changes:
                    plan.mutations.append(
                        Mutation(MutationKind.UPDATE, child.name, child_id, changes)
                    )
                self._plan_children(child, child_node, snapshot, plan, now)

    def plan_update(self, incoming: Any, snapshot: Snapshot) -> MutationPlan:
        """
        Compute the statements that bring the snapshot to the incoming state.

        Args:
            incoming: Proposed aggregate (root model with child collections)
            snapshot: Persisted state of the same aggregate

        Returns:
            MutationPlan (empty when nothing changed)

        Raises:
            ConcurrentModificationError: If the incoming version is stale
        """
        plan = MutationPlan(root_id=snapshot.id)
        now = self.clock()

        changes = self._diff(self.spec, incoming, snapshot)
        if changes:
            plan.mutations.append(
                Mutation(MutationKind.UPDATE, self.spec.name, snapshot.id, changes)
            )
        self._plan_children(self.spec, incoming, snapshot, plan, now)

        self._guard_version(incoming, snapshot, plan)
        return plan

    def plan_create(self, incoming: Any) -> MutationPlan:
        """Plan inserting a whole new aggregate."""
        plan = MutationPlan(root_id=None)
        plan.root_id = self._plan_insert(self.spec, incoming, None, plan, self.clock())
        return plan

    def _guard_version(self, incoming: Any, snapshot: Snapshot, plan: MutationPlan) -> None:
        version_field = self.spec.version_field
        expected = getattr(incoming, version_field, None) if version_field else None
        if expected is None or plan.is_empty():
            return

        actual = snapshot.values.get(version_field)
        if expected != actual:
            raise ConcurrentModificationError(self.spec.name, snapshot.id, expected, actual)

        bump = {version_field: actual + 1}
        for i, mutation in enumerate(plan.mutations):
            if mutation.node == self.spec.name and mutation.kind is MutationKind.UPDATE:
                plan.mutations[i] = Mutation(
                    MutationKind.UPDATE,
                    mutation.node,
                    mutation.identity,
                    {**mutation.values, **bump},
                    expected_version=actual,
                )
                return
        plan.mutations.insert(
            0,
            Mutation(
                MutationKind.UPDATE, self.spec.name, snapshot.id, bump, expected_version=actual
            ),
        )

    # Execution

    def execute(self, conn: Connection, plan: MutationPlan) -> None:
        """Execute a plan on a connection inside an open transaction."""
        now = self.clock()
        for mutation in plan.mutations:
            spec = self.nodes[mutation.node]
            table = spec.table

            if mutation.kind is MutationKind.INSERT:
                conn.execute(insert(table).values(**mutation.values))
                continue

            values = dict(mutation.values)
            if "updated_at" in table.c:
                values["updated_at"] = now
            stmt = update(table).where(table.c.id == mutation.identity).values(**values)
            if mutation.expected_version is not None:
                stmt = stmt.where(table.c[spec.version_field] == mutation.expected_version)

            result = conn.execute(stmt)
            if mutation.expected_version is not None and result.rowcount == 0:
                raise ConcurrentModificationError(
                    spec.name, mutation.identity, mutation.expected_version, None
                )

    def update(self, incoming: Any) -> MutationPlan:
        """
        Apply an incoming aggregate with change detection.

        Fetching, planning and executing share one transaction; any failure
        rolls the whole aggregate back.

        Args:
            incoming: Proposed aggregate; its root must carry an id

        Returns:
            The executed MutationPlan

        Raises:
            NotFoundError: If the root does not exist
        """
        root_id = getattr(incoming, "id", None)
        if root_id is None:
            raise NotFoundError(self.spec.name, "<missing id>")

        with self.database.write(self.spec.name, "update") as conn:
            snapshot = self.fetch_snapshot(conn, root_id)
            if snapshot is None:
                raise NotFoundError(self.spec.name, root_id)

            plan = self.plan_update(incoming, snapshot)
            if not plan.is_empty():
                self.execute(conn, plan)

        logger.info(
            f"Updated {self.spec.name} {root_id}: {len(plan.inserts())} inserts, "
            f"{len(plan.updates())} updates, {len(plan.skipped)} skipped",
            extra={"resource": self.spec.name, "id": str(root_id)},
        )
        return plan

    def create(self, incoming: Any) -> MutationPlan:
        """Insert a whole aggregate in one transaction."""
        plan = self.plan_create(incoming)
        with self.database.write(self.spec.name, "create") as conn:
            self.execute(conn, plan)

        logger.info(
            f"Created {self.spec.name} {plan.root_id} with {len(plan) - 1} child rows",
            extra={"resource": self.spec.name, "id": str(plan.root_id)},
        )
        return plan

    def load(self, root_id: Any) -> Snapshot:
        """
        Load a persisted aggregate.

        Raises:
            NotFoundError: If the root does not exist
        """
        with self.database.read(self.spec.name) as conn:
            snapshot = self.fetch_snapshot(conn, root_id)
        if snapshot is None:
            raise NotFoundError(self.spec.name, root_id)
        return snapshot

    def delete_node(self, node: str, node_id: Any) -> None:
        """
        Delete one node by identity; its descendants go with it through the
        store's cascading foreign keys.

        Raises:
            NotFoundError: If no such row exists
        """
        spec = self.nodes[node]
        table = spec.table
        with self.database.write(spec.name, "delete") as conn:
            result = conn.execute(
                delete(table).where(table.c.id == bindparam("id", node_id, type_=table.c.id.type))
            )
            if result.rowcount == 0:
                raise NotFoundError(spec.name, node_id)

        logger.info(
            f"Deleted {spec.name} {node_id}", extra={"resource": spec.name, "id": str(node_id)}
        )

    def delete(self, root_id: Any) -> None:
        """Delete the whole aggregate."""
        self.delete_node(self.spec.name, root_id)
