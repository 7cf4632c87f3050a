"""Webhook authentication: shared-secret Bearer token."""
import hmac

from fastapi import Depends, Header

from src.me_common.context import AppContext, get_context
from src.me_common.errors import UnauthorizedError


def secret_matches(header_value: str, secret: str) -> bool:
    """Constant-time comparison of the Authorization header against the secret."""
    expected = f"Bearer {secret}"
    return hmac.compare_digest(header_value.encode(), expected.encode())


async def require_webhook_secret(
    ctx: AppContext = Depends(get_context),
    authorization: str | None = Header(default=None),
) -> None:
    if not secret_matches(authorization or "", ctx.settings.WEBHOOK_SECRET):
        raise UnauthorizedError()
