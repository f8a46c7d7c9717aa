"""Hazard catalog and proximity classification - Pure functions.

The catalog is a static, ordered set of named sites. Classification walks
the hazardous sites in catalog order and reports the first one whose
proximity radius contains the queried point.
"""

from dataclasses import dataclass
from enum import Enum

from safezone.core.geo import Coordinate, calculate_distance


# Distance threshold for "near a hazardous site"
DEFAULT_PROXIMITY_RADIUS_M = 500.0


@dataclass(frozen=True)
class HazardSite:
    """A named location from the static catalog.

    Attributes:
        name: Unique site name
        coordinate: Site location
        is_hazardous: Whether the site itself is flagged dangerous
    """
    name: str
    coordinate: Coordinate
    is_hazardous: bool = False


DEFAULT_HAZARD_SITES: tuple[HazardSite, ...] = (
    HazardSite("Safe Park", Coordinate(34.0522, -118.2437), False),
    HazardSite("Downtown Crossing", Coordinate(34.0550, -118.2450), True),
    HazardSite("Skid Row Adjacent", Coordinate(34.0400, -118.2500), True),
    HazardSite("Library Square", Coordinate(34.0500, -118.2550), False),
)


class HazardReason(Enum):
    """Why a point was classified hazardous."""
    NONE = "none"
    FLAGGED = "flagged"
    NEARBY = "nearby"


@dataclass(frozen=True)
class ProximityResult:
    """Result of classifying a point against the catalog.

    Attributes:
        is_hazard: True if the point is hazardous
        nearest_hazard_name: Name of the matching site (first match, not closest)
        reason: FLAGGED for a named hazardous site, NEARBY for a radius match
    """
    is_hazard: bool
    nearest_hazard_name: str | None = None
    reason: HazardReason = HazardReason.NONE


SAFE = ProximityResult(is_hazard=False)


class HazardCatalog:
    """Ordered, read-only collection of hazard sites."""

    def __init__(
        self,
        sites: tuple[HazardSite, ...] | list[HazardSite] = DEFAULT_HAZARD_SITES,
        proximity_radius_m: float = DEFAULT_PROXIMITY_RADIUS_M,
    ) -> None:
        self._sites = tuple(sites)
        self._by_name = {site.name: site for site in self._sites}
        if len(self._by_name) != len(self._sites):
            raise ValueError("Hazard site names must be unique")
        self.proximity_radius_m = proximity_radius_m

    @property
    def sites(self) -> tuple[HazardSite, ...]:
        return self._sites

    @property
    def hazardous_sites(self) -> tuple[HazardSite, ...]:
        return tuple(s for s in self._sites if s.is_hazardous)

    def get(self, name: str) -> HazardSite | None:
        """Look up a site by its unique name."""
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._sites)

    def __iter__(self):
        return iter(self._sites)


def classify_point(
    point: Coordinate,
    catalog: HazardCatalog,
    site_name: str | None = None,
) -> ProximityResult:
    """Determine hazard status of a point.

    Pure function.

    A point that is itself a named hazardous entry is hazardous regardless
    of distance. Any other point (including a named safe entry) is hazardous
    only if it lies within the catalog radius of a hazardous site; catalog
    order breaks ties.

    Args:
        point: Location to classify
        catalog: Hazard catalog
        site_name: Catalog name when the point was selected manually

    Returns:
        ProximityResult describing the match
    """
    if site_name is not None:
        site = catalog.get(site_name)
        if site is not None and site.is_hazardous:
            return ProximityResult(
                is_hazard=True,
                nearest_hazard_name=site.name,
                reason=HazardReason.FLAGGED,
            )

    for site in catalog.hazardous_sites:
        if calculate_distance(point, site.coordinate) <= catalog.proximity_radius_m:
            return ProximityResult(
                is_hazard=True,
                nearest_hazard_name=site.name,
                reason=HazardReason.NEARBY,
            )

    return SAFE
