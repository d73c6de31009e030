"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware and register on app.state)
and in api/routes/v1/auth.py (to apply @limiter.limit() to login).

One shared instance means every route counts against the same in-memory
store. The per-IP login limit complements the per-account lockout in
auth/service.py: the limiter slows one client hammering many emails, the
lockout protects one account from many clients.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
