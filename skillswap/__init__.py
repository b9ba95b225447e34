"""
SkillSwap — Peer-to-Peer Skill Exchange Core
=============================================
Members advertise the skills they offer and the skills they want, then
negotiate one-to-one exchanges ("swaps").  Moderators keep the community
healthy by banning members, reviewing advertised skills and force-cancelling
swaps.

Package layout::

    skillswap/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Levels, meeting types, defaults
    ├── errors.py          # Error taxonomy surfaced to callers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   └── models.py      # Member, skills, Swap, AdminLog
    ├── engine/
    │   ├── lifecycle.py   # Swap state machine guards (pure)
    │   ├── rating.py      # Running-mean rating fold (pure)
    │   └── moderation.py  # Ban expiry + skill review decisions (pure)
    ├── services/
    │   ├── member_service.py      # Member record store + auth read path
    │   ├── swap_service.py        # Swap lifecycle persistence
    │   ├── rating_service.py      # Atomic rating aggregation
    │   ├── moderation_service.py  # Audit-logged moderator mutations
    │   ├── stats_service.py       # Member, dashboard + popular-skill statistics
    │   ├── report_service.py      # Date-windowed moderator reports
    │   └── log_buffer.py          # In-memory log tail for moderators
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT caller identity, engine, config
        └── routes/        # Member, swap and admin REST endpoints
"""

__version__ = "0.1.0"
