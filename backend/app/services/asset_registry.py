"""Read-only access to the asset register.

The inventory core never queries ``Asset`` rows directly. It goes through an
``AssetRegistry`` so that scope filtering and lookups can be served either by
the database (``SqlAssetRegistry``) or by a plain list of snapshots
(``InMemoryAssetRegistry``, used by tests and offline tooling).
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Collection, Dict, FrozenSet, Iterable, List, Optional, Protocol, Set

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.models.asset import Asset, AssetStatus
from app.models.category import Category
from app.models.inventory import ScanRecord


@dataclass(frozen=True)
class AssetSnapshot:
    """The fields of an asset the inventory core reads."""

    id: int
    asset_no: str
    name: str
    category_id: int
    department_id: int
    location_id: Optional[int] = None
    status: AssetStatus = AssetStatus.IN_USE
    category_label: Optional[str] = None
    acquire_date: Optional[date] = None


@dataclass(frozen=True)
class Page:
    """1-based page request."""

    number: int = 1
    size: int = 50

    @property
    def offset(self) -> int:
        return (max(self.number, 1) - 1) * self.size


@dataclass(frozen=True)
class AssetFilter:
    """Conjunction of membership tests over asset snapshots.

    ``None`` for an id set means "no restriction on that key". The same filter
    evaluates in Python (``matches``) and compiles to SQL (``criteria``).

    ``recorded_in_plan`` with ``recorded`` keeps only assets whose tag has a
    scan record in that plan (``True``) or only those without one (``False``).
    In SQL this is a subquery on ``scan_records``, so it does not grow with
    the number of records.
    """

    department_ids: Optional[FrozenSet[int]] = None
    location_ids: Optional[FrozenSet[int]] = None
    category_ids: Optional[FrozenSet[int]] = None
    exclude_statuses: FrozenSet[AssetStatus] = field(default_factory=frozenset)
    recorded_in_plan: Optional[int] = None
    recorded: bool = True

    def matches(self, asset: AssetSnapshot, recorded_tags: Collection[str] = ()) -> bool:
        """In-Python test; ``recorded_tags`` are the tags recorded in ``recorded_in_plan``."""
        if asset.status in self.exclude_statuses:
            return False
        if self.department_ids is not None and asset.department_id not in self.department_ids:
            return False
        if self.location_ids is not None and asset.location_id not in self.location_ids:
            return False
        if self.category_ids is not None and asset.category_id not in self.category_ids:
            return False
        if self.recorded_in_plan is not None and (asset.asset_no in recorded_tags) != self.recorded:
            return False
        return True

    def criteria(self) -> list:
        """SQLAlchemy WHERE clauses against ``Asset``."""
        clauses = []
        if self.exclude_statuses:
            clauses.append(Asset.status.notin_(list(self.exclude_statuses)))
        if self.department_ids is not None:
            clauses.append(Asset.department_id.in_(sorted(self.department_ids)))
        if self.location_ids is not None:
            clauses.append(Asset.location_id.in_(sorted(self.location_ids)))
        if self.category_ids is not None:
            clauses.append(Asset.category_id.in_(sorted(self.category_ids)))
        if self.recorded_in_plan is not None:
            recorded_tags = select(ScanRecord.asset_no).where(
                ScanRecord.plan_id == self.recorded_in_plan
            )
            if self.recorded:
                clauses.append(Asset.asset_no.in_(recorded_tags))
            else:
                clauses.append(Asset.asset_no.notin_(recorded_tags))
        return clauses

    def scanned_in(self, plan_id: int) -> "AssetFilter":
        """Copy of this filter that only keeps assets recorded in the plan."""
        return replace(self, recorded_in_plan=plan_id, recorded=True)

    def pending_in(self, plan_id: int) -> "AssetFilter":
        """Copy of this filter that drops assets recorded in the plan."""
        return replace(self, recorded_in_plan=plan_id, recorded=False)


class AssetRegistry(Protocol):
    """Data-access contract the inventory core depends on."""

    def find_by_tag(self, asset_no: str) -> Optional[AssetSnapshot]:
        ...

    def count_matching(self, asset_filter: AssetFilter) -> int:
        ...

    def list_matching(
        self, asset_filter: AssetFilter, page: Optional[Page] = None
    ) -> List[AssetSnapshot]:
        ...


def snapshot_from_asset(asset: Asset) -> AssetSnapshot:
    """Build a snapshot from an ORM row (category and parent must be loadable)."""
    return AssetSnapshot(
        id=asset.id,
        asset_no=asset.asset_no,
        name=asset.name,
        category_id=asset.category_id,
        department_id=asset.department_id,
        location_id=asset.location_id,
        status=asset.status,
        category_label=asset.category.label if asset.category is not None else None,
        acquire_date=asset.acquire_date,
    )


class SqlAssetRegistry:
    """Asset registry backed by the ``assets`` table."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Asset).options(
            joinedload(Asset.category).joinedload(Category.parent)
        )

    def find_by_tag(self, asset_no: str) -> Optional[AssetSnapshot]:
        asset = self._query().filter(Asset.asset_no == asset_no).first()
        return snapshot_from_asset(asset) if asset else None

    def count_matching(self, asset_filter: AssetFilter) -> int:
        return self.db.query(Asset).filter(*asset_filter.criteria()).count()

    def list_matching(
        self, asset_filter: AssetFilter, page: Optional[Page] = None
    ) -> List[AssetSnapshot]:
        query = (
            self._query()
            .filter(*asset_filter.criteria())
            .order_by(Asset.asset_no.asc(), Asset.id.asc())
        )
        if page is not None:
            query = query.offset(page.offset).limit(page.size)
        return [snapshot_from_asset(a) for a in query.all()]


class InMemoryAssetRegistry:
    """Asset registry over a list of snapshots.

    Scan records are not read from a database; tags recorded per plan are
    registered with ``record_scan``.
    """

    def __init__(self, assets: Optional[Iterable[AssetSnapshot]] = None):
        self._assets: List[AssetSnapshot] = list(assets or [])
        self._recorded: Dict[int, Set[str]] = {}

    def add(self, asset: AssetSnapshot) -> None:
        self._assets.append(asset)

    def record_scan(self, plan_id: int, asset_no: str) -> None:
        self._recorded.setdefault(plan_id, set()).add(asset_no)

    def _matching(self, asset_filter: AssetFilter) -> List[AssetSnapshot]:
        recorded_tags = self._recorded.get(asset_filter.recorded_in_plan, set())
        return [a for a in self._assets if asset_filter.matches(a, recorded_tags)]

    def find_by_tag(self, asset_no: str) -> Optional[AssetSnapshot]:
        for asset in self._assets:
            if asset.asset_no == asset_no:
                return asset
        return None

    def count_matching(self, asset_filter: AssetFilter) -> int:
        return len(self._matching(asset_filter))

    def list_matching(
        self, asset_filter: AssetFilter, page: Optional[Page] = None
    ) -> List[AssetSnapshot]:
        matching = sorted(self._matching(asset_filter), key=lambda a: (a.asset_no, a.id))
        if page is not None:
            return matching[page.offset:page.offset + page.size]
        return matching
