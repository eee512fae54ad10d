"""
auth_service tests

Covers the authentication service:

- Login, registration and Google sign-in routes (`routes/auth.py`)
- Token issue, rotation and revocation (`auth.py`)
- Configuration parsing (`config.py`)
- Audit trail and database initialization (`utils/event_logger.py`, `db.py`)
- The requests-based API client (`web_client`)
"""
