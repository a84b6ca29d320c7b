"""Proximity clustering by great-circle distance.

The default mode is a greedy single pass in input order: the first
unvisited contact seeds a cluster and each later unvisited contact joins
only if it lies within the threshold of the seed *and* of every member
already admitted, so any two members of a cluster are within the
threshold.  Membership is first-found and order-dependent.

With ``transitive=True`` the clusters are instead the connected
components of the "within threshold" graph, which can chain contacts
that are individually further apart than the threshold.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

import networkx as nx

from contact_groups.grouping.domain import (
    Contact,
    DiscoveryMethod,
    GroupCandidate,
    LocationPayload,
    confidence_for_size,
)
from contact_groups.grouping.geo import centroid, haversine_km, haversine_m, is_valid_location


@dataclass(frozen=True)
class ProximityCluster:
    """An ordered run of located contacts satisfying the distance predicate."""

    contacts: tuple[Contact, ...]

    @property
    def center(self) -> tuple[float, float]:
        return centroid((c.location.latitude, c.location.longitude) for c in self.contacts)

    @property
    def radius_m(self) -> float:
        """Distance from the centroid to the furthest member."""
        lat, lon = self.center
        return max(
            haversine_m(lat, lon, c.location.latitude, c.location.longitude)
            for c in self.contacts
        )

    @property
    def city(self) -> str | None:
        cities = Counter(c.location.city for c in self.contacts if c.location.city)
        if not cities:
            return None
        return cities.most_common(1)[0][0]


def _distance_km(a: Contact, b: Contact) -> float:
    return haversine_km(
        a.location.latitude, a.location.longitude,
        b.location.latitude, b.location.longitude,
    )


def _located(contacts: list[Contact]) -> list[Contact]:
    return [
        c for c in contacts
        if c.location is not None
        and is_valid_location(c.location.latitude, c.location.longitude)
    ]


def greedy_clusters(
    contacts: list[Contact],
    linked: Callable[[Contact, Contact], bool],
    min_group_size: int,
) -> list[tuple[Contact, ...]]:
    """Greedy seed-and-admit pass shared by the proximity and venue clusterers.

    A candidate is admitted only when ``linked`` holds against every
    member already in the cluster, seed included.
    """
    visited: set[str] = set()
    clusters: list[tuple[Contact, ...]] = []
    for i, seed in enumerate(contacts):
        if seed.id in visited:
            continue
        visited.add(seed.id)
        members = [seed]
        for candidate in contacts[i + 1:]:
            if candidate.id in visited:
                continue
            if all(linked(member, candidate) for member in members):
                members.append(candidate)
                visited.add(candidate.id)
        if len(members) >= min_group_size:
            clusters.append(tuple(members))
    return clusters


def _transitive_clusters(
    contacts: list[Contact], threshold_km: float, min_group_size: int
) -> list[tuple[Contact, ...]]:
    G = nx.Graph()
    order = {c.id: idx for idx, c in enumerate(contacts)}
    by_id = {c.id: c for c in contacts}
    for contact in contacts:
        G.add_node(contact.id)
    for i, a in enumerate(contacts):
        for b in contacts[i + 1:]:
            if _distance_km(a, b) <= threshold_km:
                G.add_edge(a.id, b.id)

    clusters = []
    for component in nx.connected_components(G):
        if len(component) < min_group_size:
            continue
        members = sorted(component, key=order.__getitem__)
        clusters.append(tuple(by_id[cid] for cid in members))
    clusters.sort(key=lambda cl: order[cl[0].id])
    return clusters


def cluster_by_proximity(
    contacts: list[Contact],
    threshold_km: float = 0.5,
    min_group_size: int = 2,
    transitive: bool = False,
) -> list[ProximityCluster]:
    """Cluster located contacts by distance.

    Contacts without a valid location are ignored.  Clusters smaller
    than ``min_group_size`` are discarded.

    Args:
        contacts: Contacts in the order they should be considered.
        threshold_km: Maximum pairwise (greedy) or edge (transitive)
            distance in kilometres.
        min_group_size: Smallest cluster that is kept.
        transitive: Use connected components instead of the greedy pass.

    Returns:
        Clusters ordered by the input position of their first member.
    """
    located = _located(contacts)
    if transitive:
        runs = _transitive_clusters(located, threshold_km, min_group_size)
    else:
        runs = greedy_clusters(
            located,
            lambda a, b: _distance_km(a, b) <= threshold_km,
            min_group_size,
        )
    return [ProximityCluster(contacts=run) for run in runs]


def location_groups(clusters: list[ProximityCluster]) -> list[GroupCandidate]:
    """Turn proximity clusters into ``location`` group candidates.

    Clusters sharing a city are told apart by their rounded centre so
    every group keeps a distinct name.
    """
    city_counts = Counter(c.city for c in clusters if c.city)
    groups = []
    for cluster in clusters:
        lat, lon = cluster.center
        size = len(cluster.contacts)
        city = cluster.city
        if not city:
            name = f"Nearby Contacts ({lat:.3f}, {lon:.3f})"
        elif city_counts[city] > 1:
            name = f"Met in {city} ({lat:.3f}, {lon:.3f})"
        else:
            name = f"Met in {city}"
        groups.append(
            GroupCandidate(
                name=name,
                contact_ids=tuple(c.id for c in cluster.contacts),
                confidence=confidence_for_size(size),
                reason=f"{size} contacts met within {cluster.radius_m:.0f}m of a common point",
                discovery_method=DiscoveryMethod.PROXIMITY,
                payload=LocationPayload(
                    center_latitude=lat,
                    center_longitude=lon,
                    radius_m=cluster.radius_m,
                    city=city,
                ),
            )
        )
    return groups
