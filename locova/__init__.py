"""
Locova — Location-Based Trend Sharing with Gamified Engagement
================================================================
Users submit "trends" (place, event and food tips) tagged with
coordinates, browse them nearby or globally, like / comment / save them,
and climb a points leaderboard.  This package is the aggregation and
reward layer between persisted rows and whatever renders them.

Package layout::

    locova/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level table, point defaults, categories
    ├── session.py         # Explicit session context (signed-in user)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── events.py      # ToggleResult + ChangeEvent envelope
    │   ├── levels.py      # Points → level tier resolver
    │   ├── geo.py         # Haversine distance + bounding boxes
    │   ├── snapshot.py    # Engagement snapshot folding
    │   ├── leaderboard.py # Leaderboard assembly + approximate rank
    │   └── changefeed.py  # In-process change feed + PG LISTEN/NOTIFY
    ├── services/
    │   ├── trend_service.py        # Submit + unified feed
    │   ├── engagement_service.py   # Like/save toggles + batch reads
    │   ├── reward_service.py       # Ledger-guarded point awards
    │   ├── leaderboard_service.py  # Global / radius ranking
    │   ├── profile_service.py      # Profile reads and edits
    │   ├── places_service.py       # Debounced place search
    │   ├── engagement_controller.py  # Async orchestration per view
    │   └── realtime_service.py     # Change → snapshot refresh trigger
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, JWT user
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
