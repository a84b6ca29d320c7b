"""Static heuristic tables for venue scoring and search radius selection.

These are plain data: the configuration models in
:mod:`contact_groups.grouping.config` copy them as defaults, and any of
them can be overridden from ``config/grouping.yaml``.
"""

from __future__ import annotations

# Base search radius (meters) per venue type.  Every type listed here is
# considered a "known" venue type by the scorer.
VENUE_BASE_RADIUS_M: dict[str, int] = {
    "convention_center": 2000,
    "expo_center": 2500,
    "conference_center": 1500,
    "stadium": 2000,
    "arena": 1500,
    "concert_hall": 800,
    "opera_house": 600,
    "performing_arts_theater": 500,
    "university": 3000,
    "business_center": 1000,
    "corporate_campus": 2000,
    "museum": 600,
    "art_gallery": 400,
    "cultural_center": 1000,
    "community_center": 800,
    "lodging": 500,
    "resort": 2000,
    "tourist_attraction": 800,
    "amusement_park": 1500,
    "default": 1000,
}

# Event relevance priority (1-10) for mixed-type venues.
VENUE_TYPE_PRIORITIES: dict[str, int] = {
    "convention_center": 10,
    "conference_center": 9,
    "university": 8,
    "business_center": 6,
    "cultural_center": 5,
    "community_center": 4,
    "stadium": 3,
    "tourist_attraction": 2,
    "default": 1,
}

EVENT_NAME_KEYWORDS: list[str] = [
    "conference",
    "convention",
    "expo",
    "center",
    "hall",
    "arena",
]

# Radius multiplier per city (urban density / event spread).
CITY_MULTIPLIERS: dict[str, float] = {
    "las vegas": 1.8,
    "orlando": 1.4,
    "austin": 1.3,
    "san francisco": 0.7,
    "new york": 0.6,
    "chicago": 0.8,
    "london": 0.8,
    "paris": 0.8,
    "barcelona": 0.9,
    "singapore": 0.9,
    "seattle": 1.0,
    "boston": 0.8,
}

# Python weekday numbering: Monday == 0 ... Sunday == 6
WEEKDAY_MULTIPLIERS: dict[int, float] = {
    0: 1.2,
    1: 1.3,
    2: 1.3,
    3: 1.2,
    4: 1.0,
    5: 0.7,
    6: 0.6,
}

# Business hours weigh more than late evening; hours not listed fall back
# to the caller's default.
HOUR_MULTIPLIERS: dict[int, float] = {
    8: 1.1,
    9: 1.3,
    10: 1.2,
    11: 1.1,
    12: 0.9,
    13: 1.0,
    14: 1.2,
    15: 1.1,
    16: 1.0,
    17: 0.8,
    18: 0.6,
    19: 0.7,
    20: 0.6,
    21: 0.4,
    22: 0.3,
}

SEASONAL_MULTIPLIERS: dict[int, float] = {
    1: 0.8,
    2: 1.1,
    3: 1.3,
    4: 1.3,
    5: 1.2,
    6: 1.0,
    7: 0.7,
    8: 0.8,
    9: 1.3,
    10: 1.4,
    11: 1.2,
    12: 0.6,
}

# Major recurring events, matched by city + month + day.
KNOWN_EVENTS: dict[str, dict] = {
    "ces": {
        "city": "las vegas",
        "month": 1,
        "days": [5, 6, 7, 8, 9],
        "radius_m": 3000,
        "types": ["convention_center", "expo_center"],
        "description": "Consumer Electronics Show",
    },
    "nab_show": {
        "city": "las vegas",
        "month": 4,
        "days": [8, 9, 10, 11, 12],
        "radius_m": 2500,
        "types": ["convention_center"],
        "description": "National Association of Broadcasters Show",
    },
    "sxsw": {
        "city": "austin",
        "month": 3,
        "days": [10, 11, 12, 13, 14, 15, 16, 17],
        "radius_m": 2000,
        "types": ["convention_center", "cultural_center", "performing_arts_theater"],
        "description": "South by Southwest",
    },
    "comic_con": {
        "city": "san diego",
        "month": 7,
        "days": [20, 21, 22, 23, 24],
        "radius_m": 1500,
        "types": ["convention_center"],
        "description": "San Diego Comic Convention",
    },
    "dreamforce": {
        "city": "san francisco",
        "month": 9,
        "days": [12, 13, 14, 15],
        "radius_m": 1200,
        "types": ["convention_center", "business_center"],
        "description": "Salesforce Dreamforce",
    },
    "mobile_world_congress": {
        "city": "barcelona",
        "month": 2,
        "days": [26, 27, 28],
        "radius_m": 1800,
        "types": ["convention_center", "expo_center"],
        "description": "Mobile World Congress",
    },
}

# Types requested from the nearby search when no known event applies.
DEFAULT_SEARCH_TYPES: list[str] = [
    "convention_center",
    "conference_center",
    "university",
    "stadium",
    "community_center",
    "museum",
    "art_gallery",
]

TEXT_SEARCH_TEMPLATES: dict[str, list[str]] = {
    "current_events": [
        "conference events {currentDate}",
        "meetings seminars {currentMonth}",
        "business events today",
        "networking events this week",
        "corporate gatherings {currentDate}",
    ],
    "business_events": [
        "business conference",
        "corporate meeting",
        "industry summit",
        "professional networking",
        "trade show",
    ],
    "tech_conferences": [
        "technology conference {currentMonth}",
        "tech summit {currentYear}",
        "developer conference",
        "startup events",
        "innovation summit",
    ],
    "cultural_events": [
        "cultural events",
        "art exhibition",
        "museum events",
        "gallery opening",
        "cultural festival",
    ],
}

CITY_TEXT_SEARCH_TEMPLATES: dict[str, list[str]] = {
    "las vegas": [
        "CES {currentYear}",
        "NAB Show",
        "Las Vegas convention",
        "strip conference",
        "vegas trade show",
    ],
    "austin": [
        "SXSW {currentYear}",
        "Austin conference",
        "downtown events",
        "Austin tech meetup",
    ],
    "san francisco": [
        "Dreamforce",
        "SF tech conference",
        "Silicon Valley event",
        "Moscone Center event",
    ],
}

TECH_VENUE_TYPES: list[str] = ["convention_center", "university", "business_center"]
CULTURAL_VENUE_TYPES: list[str] = ["museum", "art_gallery", "cultural_center"]
