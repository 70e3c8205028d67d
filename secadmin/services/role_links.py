"""Parent/child link maintenance and the deletion policy for role graphs.

``parent_ids`` is the source of truth for edges. ``child_ids`` is a cached
back-reference kept equal to ``{n.id : this.id in n.parent_ids}`` so that a
parent can find its children without scanning the table. Every function
here writes through the caller's session and never commits; the caller owns
the transaction.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session

from secadmin.core.exceptions import ValidationError, format_ids
from secadmin.services.lookups import get_or_404, revoke_grants
from secadmin.services.role_graph import InheritanceGraph, sql_node_loader
from secadmin.services.role_kinds import RoleKind

logger = logging.getLogger("secadmin.roles")


class LinkSynchronizer:
    """Keeps ``child_ids`` consistent with ``parent_ids`` for one role kind."""

    def __init__(self, kind: RoleKind):
        self.kind = kind

    def graph(self, db: Session) -> InheritanceGraph:
        return InheritanceGraph(sql_node_loader(db, self.kind.model))

    def on_parents_changed(self, db: Session, node_id: int,
                           old_parents: Iterable[int], new_parents: Iterable[int]) -> None:
        """Mirror a change of ``node_id``'s parents onto the parents' child lists.

        Every parent in ``new_parents`` is made to list the node, which also
        repairs links that drifted; parents that were dropped stop listing it.
        """
        model = self.kind.model
        old_parents, new_parents = set(old_parents), set(new_parents)
        removed = old_parents - new_parents
        touched = new_parents | removed
        if not touched:
            return

        parents = {
            row.id: row
            for row in db.query(model)
            .filter(model.id.in_(sorted(touched)))
            .with_for_update()
            .all()
        }

        for parent_id in sorted(new_parents):
            parent = parents.get(parent_id)
            if parent is None:
                continue
            children = parent.child_ids
            if node_id not in children:
                parent.child_ids = children | {node_id}

        for parent_id in sorted(removed):
            parent = parents.get(parent_id)
            if parent is None:
                continue
            children = parent.child_ids
            if node_id in children:
                parent.child_ids = children - {node_id}

        logger.debug(
            "%s %s links: +%s -%s",
            self.kind.label, node_id, sorted(new_parents - old_parents), sorted(removed),
        )

    def validate_explicit_against_inherited(self, db: Session, node, proposed_explicit: Iterable[int],
                                            parent_ids: Iterable[int],
                                            revoked: Optional[Iterable[int]] = None) -> Set[int]:
        """Reject dropping an item the node inherits; return the inherited set.

        ``parent_ids`` must be the parents the node will have after the
        change. ``revoked`` defaults to the ids leaving the node's current
        explicit set.
        """
        proposed = set(proposed_explicit)
        node_id = node.id if node is not None else None
        inherited = self.graph(db).resolve_inherited_items(
            parent_ids, exclude=[node_id] if node_id is not None else None,
        )
        if revoked is None:
            current = node.explicit_item_ids if node is not None else set()
            revoked = current - proposed

        offending = set(revoked) & inherited
        if offending:
            raise ValidationError(
                f"Cannot remove inherited {self.kind.item_label}(s): {format_ids(offending)}. "
                f"Inherited {self.kind.item_label}s cannot be removed.",
                offending,
            )
        return inherited

    def rebuild_child_links(self, db: Session) -> List[int]:
        """Recompute every ``child_ids`` from ``parent_ids``.

        Parent ids pointing at missing rows (or at the row itself) are
        dropped first. Returns the ids of the rows that changed.
        """
        model = self.kind.model
        rows = {row.id: row for row in db.query(model).with_for_update().all()}
        expected: Dict[int, Set[int]] = defaultdict(set)
        changed: Set[int] = set()

        for row_id, row in rows.items():
            parents = row.parent_ids
            valid = {p for p in parents if p in rows and p != row_id}
            if valid != parents:
                row.parent_ids = valid
                changed.add(row_id)
            for parent_id in valid:
                expected[parent_id].add(row_id)

        for row_id, row in rows.items():
            if row.child_ids != expected[row_id]:
                row.child_ids = expected[row_id]
                changed.add(row_id)

        if changed:
            logger.warning("Repaired %s links on rows %s", self.kind.label, sorted(changed))
        return sorted(changed)


class DeletionPolicy:
    """Top-down deletion with cascade to children left without parents.

    A role that inherits from others cannot be deleted. Deleting a root
    removes it from its children's parents; a child whose every parent is
    being deleted goes too, through as many levels as needed. Survivors keep
    their stored explicit items; what they lose is recomputed at read time.
    Rows granting a deleted role (job roles, users) stop listing it.
    """

    def __init__(self, kind: RoleKind):
        self.kind = kind

    def delete(self, db: Session, node_id: int) -> List[int]:
        """Delete ``node_id`` and its orphaned descendants; return the cascaded ids."""
        model = self.kind.model
        node = get_or_404(db, model, node_id, self.kind.label, for_update=True)

        blocking = node.parent_ids
        if blocking:
            raise ValidationError(
                f"Cannot delete {self.kind.label.lower()} {node_id} because it inherits from "
                f"other role(s): {format_ids(blocking)}. Delete all parent roles first.",
                blocking,
            )

        rows = {
            row.id: row
            for row in db.query(model)
            .filter(or_(model.parents_json.isnot(None), model.children_json.isnot(None)))
            .with_for_update()
            .all()
        }
        rows[node_id] = node
        parents_of = {row_id: row.parent_ids for row_id, row in rows.items()}

        children_of: Dict[int, Set[int]] = defaultdict(set)
        for row_id, parents in parents_of.items():
            for parent_id in parents:
                children_of[parent_id].add(row_id)

        doomed = {node_id}
        worklist = [node_id]
        while worklist:
            parent_id = worklist.pop()
            for child_id in sorted(children_of[parent_id]):
                if child_id in doomed:
                    continue
                if parents_of[child_id] <= doomed:
                    doomed.add(child_id)
                    worklist.append(child_id)

        for row_id, row in rows.items():
            if row_id in doomed:
                continue
            parents = parents_of[row_id]
            if parents & doomed:
                row.parent_ids = parents - doomed
            children = row.child_ids
            if children & doomed:
                row.child_ids = children - doomed

        revoked = revoke_grants(db, self.kind.granted_by, doomed)
        if revoked:
            logger.info(
                "Revoked %s %s from %s granting row(s)",
                self.kind.label.lower(), sorted(doomed), len(revoked),
            )

        for row_id in sorted(doomed):
            db.delete(rows[row_id])
        db.flush()

        cascaded = sorted(doomed - {node_id})
        logger.info("Deleted %s %s (cascaded: %s)", self.kind.label.lower(), node_id, cascaded)
        return cascaded
