"""
Routes Package for Support Bot
==============================

All API route definitions, one APIRouter per area.

**Customer-Facing Routes:**
- account.py: Signup, login, logout
- users.py: Own profile, orders and cases
- chat.py: Product selection and chat turns

**Admin Routes (require an admin bearer token):**
- admin_cases.py: Case triage, case updates, admin replies, all orders

Router Registration:
--------------------
main.py mounts every router under the /api prefix.

Error Handling:
---------------
Routes raise HTTPException for error conditions:
- 400: Bad request (no product selected, invalid order/product, bad input)
- 401: Missing or invalid bearer token
- 403: Not allowed (other user's data, non-admin on admin routes)
- 404: Not found
- 429: Too many requests (rate limited)
- 502: The text generation service could not answer
"""

from .account import account_router
from .users import users_router
from .chat import chat_router
from .admin_cases import admin_cases_router

__all__ = [
    "account_router",
    "users_router",
    "chat_router",
    "admin_cases_router",
]
