from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from eduplan.core.exceptions import ScopeResolutionError
from eduplan.schemas.timetable import Allocation, Division

logger = logging.getLogger(__name__)

SCOPE_VALUES = ("global", "major", "group", "division")


def _division_matches(division: Division, scope: str, scope_id: str) -> bool:
    if scope == "major":
        return division.major_id == scope_id
    if scope == "group":
        return scope_id in (division.group_ids or [])
    return False


def filter_allocations(
    allocations: Sequence[Allocation],
    scope: str,
    scope_id: str | None = None,
    divisions: Iterable[Division] | None = None,
    *,
    strict: bool = False,
) -> list[Allocation]:
    if scope not in SCOPE_VALUES:
        raise ScopeResolutionError(scope, f"Unknown generation scope '{scope}'")
    if scope == "global":
        return list(allocations)
    if not scope_id:
        logger.warning("No scope id supplied for scope=%s; using all %d allocations", scope, len(allocations))
        return list(allocations)

    if scope == "division":
        return [item for item in allocations if item.division_id == scope_id]

    if divisions is None:
        if strict:
            raise ScopeResolutionError(
                scope,
                f"Division table is required to resolve scope '{scope}' ({scope_id})",
            )
        logger.warning(
            "Division table missing for scope=%s scope_id=%s; allocations are not filtered",
            scope,
            scope_id,
        )
        return list(allocations)

    divisions_by_id = {division.id: division for division in divisions}
    scoped: list[Allocation] = []
    for allocation in allocations:
        division = divisions_by_id.get(allocation.division_id) if allocation.division_id else None
        if division is None:
            continue
        if _division_matches(division, scope, scope_id):
            scoped.append(allocation)
    return scoped
