"""Collapse a changeset range into one final action per path."""

from __future__ import annotations

from typing import Dict, Iterable, List

from reposearch.models import Action, Changeset


def reduce_changesets(changesets: Iterable[Changeset] | None) -> Dict[str, Action]:
    """Fold changesets in ascending id order; the last action on a path wins.

    SCM action codes: A (add), M (modified), R (replaced) map to
    ``ADD_OR_UPDATE``; D (deleted) maps to ``DELETE``.
    """
    actions: Dict[str, Action] = {}
    for changeset in sorted(changesets or (), key=lambda item: item.id):
        for change in changeset.changes:
            actions[change.path] = Action.from_scm_code(change.action)
    return actions


def select_range(
    changesets: Iterable[Changeset], lower_exclusive: int, upper_inclusive: int
) -> List[Changeset]:
    return [cs for cs in changesets if lower_exclusive < cs.id <= upper_inclusive]
