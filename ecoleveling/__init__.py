"""
Eco-Leveling — Gamified Eco-Action Sharing for Students
========================================================
Students post photos and videos of environmental actions, optionally
tagged with one of the day's quests.  Moderators approve or decline each
post; approval credits the quest's points and likes from other students
add more.  A leaderboard ranks everyone by their current balance.

Package layout::

    ecoleveling/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Validation limits, media helpers
    ├── errors.py          # Domain error taxonomy → HTTP status
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # users, posts, post_likes, comments, audit_log
    ├── engine/
    │   ├── quests.py      # Quest catalog + daily rotation
    │   └── leaderboard.py # Pure ranking logic
    ├── services/
    │   ├── auth_service.py        # Registration, login, session tokens
    │   ├── post_service.py        # Submission, feed, edit, delete
    │   ├── moderation_service.py  # pending → approved/declined + points
    │   ├── engagement_service.py  # Like toggle
    │   ├── comment_service.py     # Comments
    │   ├── leaderboard_service.py # Aggregation over posts + users
    │   ├── profile_service.py     # Profile edits, rename cascade
    │   ├── upload_service.py      # Photo/video storage
    │   └── audit_service.py       # Best-effort audit trail
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Register / login → JWT cookie
        ├── deps.py        # Engine, config, current-user dependencies
        └── routes/        # posts, comments, users, quests, leaderboard, media
"""

__version__ = "0.1.0"
