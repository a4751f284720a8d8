import logging
from typing import Any

import httpx
from fastapi import Depends, Header, HTTPException, status

from jobly.api.deps import get_user_repository
from jobly.core.auth import Principal
from jobly.core.config import Settings, get_settings
from jobly.services.repository import RepositoryNotFoundError, RepositoryUnavailableError
from jobly.services.users import UserRepository

logger = logging.getLogger(__name__)


async def get_current_principal(
    settings: Settings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    """Authenticate the bearer token with the identity provider.

    The provider vouches for the username; admin rights come from that
    user's row, so a token for a user Jobly does not know is rejected.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication requires bearer token",
        )

    token = authorization.split(" ", maxsplit=1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="empty bearer token")

    if not settings.auth_url:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="identity provider is not configured",
        )

    user = await _fetch_identity(
        auth_url=settings.auth_url,
        auth_anon_key=settings.auth_anon_key,
        token=token,
        timeout_seconds=settings.auth_timeout_seconds,
    )
    username = _resolve_username(user)
    if not username:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token")

    try:
        is_admin = await users.is_admin(username)
    except RepositoryNotFoundError as exc:
        logger.info("rejected token for unknown user=%s", username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unknown user") from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    subject = user.get("id")
    return Principal(
        username=username,
        is_admin=is_admin,
        subject=subject if isinstance(subject, str) else None,
    )


def ensure_permitted(check, *args: Any) -> None:
    """Run a Principal permission check and surface refusals as 401s."""
    try:
        check(*args)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


async def _fetch_identity(
    *,
    auth_url: str,
    auth_anon_key: str | None,
    token: str,
    timeout_seconds: float,
) -> dict[str, Any]:
    headers = {"Authorization": f"Bearer {token}"}
    if auth_anon_key:
        headers["apikey"] = auth_anon_key
    url = f"{auth_url.rstrip('/')}/auth/v1/user"

    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:  # pragma: no cover - network dependent
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="identity verification unavailable",
        ) from exc

    if response.status_code in {401, 403}:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid bearer token")
    if response.status_code != 200:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="identity verification failed",
        )

    return response.json()


def _resolve_username(user: dict[str, Any]) -> str | None:
    app_metadata = user.get("app_metadata")
    if isinstance(app_metadata, dict):
        username = app_metadata.get("username")
        if isinstance(username, str) and username.strip():
            return username.strip()

    user_metadata = user.get("user_metadata")
    if isinstance(user_metadata, dict):
        username = user_metadata.get("username")
        if isinstance(username, str) and username.strip():
            return username.strip()

    return None
