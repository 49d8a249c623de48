"""
管理端身份依赖

Requests carry the operator in `X-Admin-User` (id or email) and the shared
key from `ADMIN_API_KEY` in `X-Admin-Token`. Without a configured key the
admin API stays closed, except in the development and test environments
where only the user header is checked.
"""

from dataclasses import dataclass
import hmac

from fastapi import Header

from trend_radio.core.config import settings
from trend_radio.services.radio.errors import RadioErrorHandler, RadioOperationError

OPEN_ADMIN_ENVIRONMENTS = frozenset({"development", "test"})


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    user_id: str
    email: str | None = None


def _deny(message: str, user_id: str | None = None) -> RadioOperationError:
    return RadioOperationError(
        RadioErrorHandler.handle_auth_error(
            message, "admin_authorization", required_role="admin", admin_user_id=user_id
        )
    )


async def get_current_admin(
    x_admin_user: str | None = Header(default=None),
    x_admin_token: str | None = Header(default=None),
) -> AdminIdentity:
    user = (x_admin_user or "").strip()
    if not user:
        raise _deny("Admin authentication required")

    if settings.ADMIN_API_KEY:
        if not hmac.compare_digest(x_admin_token or "", settings.ADMIN_API_KEY):
            raise _deny("Admin token rejected", user)
    elif settings.ENVIRONMENT not in OPEN_ADMIN_ENVIRONMENTS:
        raise _deny("Admin API key is not configured", user)

    return AdminIdentity(user_id=user, email=user if "@" in user else None)
