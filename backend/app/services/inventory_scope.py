"""Scope resolution: which assets an inventory plan counts.

Resolution is pure and recomputed on every query, so assets created, moved
or scrapped while a plan is running are reflected immediately.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional
import logging

from app.models.asset import AssetStatus
from app.models.inventory import InventoryPlan, ScopeType
from app.services.asset_registry import AssetFilter, AssetSnapshot

logger = logging.getLogger(__name__)

# Scrapped assets are never part of any count.
EXCLUDED_STATUSES = frozenset({AssetStatus.SCRAPPED})


@dataclass(frozen=True)
class ResolvedScope:
    """A plan scope turned into an asset filter."""

    scope_type: ScopeType
    scope_ids: FrozenSet[int]
    asset_filter: AssetFilter
    # True when a non-"all" scope had no ids and was widened to every asset
    fallback_to_all: bool = False

    def contains(self, asset: AssetSnapshot) -> bool:
        return self.asset_filter.matches(asset)


def resolve_scope(
    scope_type: ScopeType,
    scope_ids: Optional[Iterable[int]],
    plan_id: Optional[int] = None,
) -> ResolvedScope:
    """Build the asset filter for a scope type and id set.

    An empty id set under a department/location/category scope widens to the
    unconditional filter. Plans created through the service cannot reach that
    state; it is kept as an explicit, logged policy for rows written before
    the non-empty check existed.
    """
    ids = frozenset(int(i) for i in (scope_ids or []))
    scope_type = ScopeType(scope_type)

    if scope_type == ScopeType.ALL:
        return ResolvedScope(
            scope_type=scope_type,
            scope_ids=frozenset(),
            asset_filter=AssetFilter(exclude_statuses=EXCLUDED_STATUSES),
        )

    if not ids:
        logger.warning(
            "Inventory plan %s has scope '%s' with no ids; counting all assets",
            plan_id,
            scope_type.value,
        )
        return ResolvedScope(
            scope_type=scope_type,
            scope_ids=ids,
            asset_filter=AssetFilter(exclude_statuses=EXCLUDED_STATUSES),
            fallback_to_all=True,
        )

    if scope_type == ScopeType.DEPARTMENT:
        asset_filter = AssetFilter(department_ids=ids, exclude_statuses=EXCLUDED_STATUSES)
    elif scope_type == ScopeType.LOCATION:
        asset_filter = AssetFilter(location_ids=ids, exclude_statuses=EXCLUDED_STATUSES)
    else:
        asset_filter = AssetFilter(category_ids=ids, exclude_statuses=EXCLUDED_STATUSES)

    return ResolvedScope(scope_type=scope_type, scope_ids=ids, asset_filter=asset_filter)


def resolve_plan_scope(plan: InventoryPlan) -> ResolvedScope:
    """Resolve the scope stored on a plan row."""
    return resolve_scope(plan.scope_type, plan.scope_ids, plan_id=plan.id)
