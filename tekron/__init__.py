"""
Tekron - Event Operations Backend
==================================
Runs the backend of a live event: attendee registration, desk approval and
check-in, staff announcements with push fan-out, lost-and-found moderation,
feedback, badges, and a small XP/level economy that rewards participation.

Package layout::

    tekron/
    ├── config.py          # YAML -> typed Python config
    ├── constants.py       # XP award table + leveling formula
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Superadmin bootstrap
    ├── engine/
    │   ├── access.py      # Role x approval -> route group table
    │   ├── lifecycle.py   # Participant / event state rules
    │   └── lost_found.py  # Lost-and-found status machine
    ├── services/
    │   ├── xp_service.py          # Atomic XP awards
    │   ├── participant_service.py # Registration, approval, check-in
    │   ├── event_service.py       # Event CRUD, status, winners, scores
    │   ├── broadcast_service.py   # Push fan-out to audiences
    │   ├── alert_service.py       # Append-only alert log + bus publish
    │   ├── alert_bus.py           # In-process pub/sub for new alerts
    │   ├── notifications.py       # Expo push gateway client
    │   ├── lost_found_service.py  # Reports and moderation
    │   ├── feedback_service.py    # Ratings per event
    │   ├── badge_service.py       # Badge catalogue and awards
    │   ├── staff_service.py       # Admins, volunteers, push tokens
    │   ├── audit.py               # Audit-log row helpers
    │   └── auth_service.py        # Password checks + token revocation
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Session context + access guards
        ├── auth.py        # Login / register / logout + JWT issuance
        └── routes/        # participant, admin, superadmin, volunteer,
                           # alerts, community (feedback + lost & found)
"""

__version__ = "0.1.0"
