"""Spatial clustering of contacts.

Greedy pairwise-threshold clustering by GPS distance, with an opt-in
transitive mode built on networkx connected components, plus the
venue-aware variant used by event detection.
"""

from .proximity import ProximityCluster, cluster_by_proximity, location_groups
from .venue_cluster import cluster_by_venue, shares_venue

__all__ = [
    "ProximityCluster",
    "cluster_by_proximity",
    "cluster_by_venue",
    "location_groups",
    "shares_venue",
]
