"""
API route modules for registration and event administration.

This package contains subrouters for:
- Auth: login, logout, session, password change and staff accounts
- Registration: contestant (single/group) entries and guests
- Entries: talent details, single performances and group performances
- Passes: QR code management, QR emails and check-in
- Reports: CSV/Excel/PDF exports

Routers are included from talent_quest.api.main (under the /api/v1 prefix).
"""
