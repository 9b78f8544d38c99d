# This project was developed with assistance from AI tools.
"""
Keycloak bearer-token authentication for the loan API.

Tokens are verified against the realm's JWKS. The platform role comes from
``realm_access.roles`` and fixes the caller's loan data scope (own loans,
brokered loans, funded loans, or the full pipeline). ``email_verified`` is
carried through because quote submission is gated on it.

With AUTH_DISABLED=true every request runs as the configured dev persona
(AUTH_DEV_USER_ID / AUTH_DEV_ROLE), so the borrower flow can be exercised
locally without Keycloak.
"""

import logging
import time
from typing import Annotated

import httpx
import jwt
from fastapi import Depends, HTTPException, Request, status
from rpc_db.enums import UserRole

from ..core.auth import build_data_scope
from ..core.config import settings
from ..schemas.auth import TokenPayload, UserContext

logger = logging.getLogger(__name__)

# Most privileged first. A token carrying several platform roles gets the first match.
ROLE_PRECEDENCE = (
    UserRole.ADMIN,
    UserRole.OPERATIONS,
    UserRole.BROKER,
    UserRole.INVESTOR,
    UserRole.BORROWER,
)


class _RealmKeys:
    """JWKS for the configured realm, cached for JWKS_CACHE_TTL seconds."""

    def __init__(self):
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at = 0.0

    def _refresh(self) -> None:
        url = (
            f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"
            "/protocol/openid-connect/certs"
        )
        response = httpx.get(url, timeout=5)
        response.raise_for_status()
        jwk_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in jwk_set.keys}
        self._fetched_at = time.time()

    def signing_key(self, kid: str | None) -> jwt.PyJWK:
        try:
            if time.time() - self._fetched_at > settings.JWKS_CACHE_TTL:
                self._refresh()
            if kid not in self._keys:
                # unknown kid: the realm may have rotated keys
                self._refresh()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch JWKS from Keycloak: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from exc
        try:
            return self._keys[kid]
        except KeyError:
            raise jwt.InvalidTokenError(f"No matching key found for kid={kid}") from None


_realm_keys = _RealmKeys()


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    return token if scheme == "Bearer" and token else None


def _decode_token(token: str) -> TokenPayload:
    """Verify signature and issuer; audience is not checked."""
    kid = jwt.get_unverified_header(token).get("kid")
    payload = jwt.decode(
        token,
        _realm_keys.signing_key(kid).key,
        algorithms=["RS256"],
        issuer=f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}",
        options={"verify_aud": False},
    )
    return TokenPayload(**payload)


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """Pick the platform role from realm_access.roles; Keycloak built-ins are ignored."""
    granted = set(token_payload.realm_access.get("roles", []))
    matches = [role for role in ROLE_PRECEDENCE if role.value in granted]

    if not matches:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No recognized role assigned",
        )
    if len(matches) > 1:
        logger.warning(
            "User %s has multiple roles %s, using %s",
            token_payload.sub,
            [r.value for r in matches],
            matches[0].value,
        )
    return matches[0]


def _dev_user() -> UserContext:
    user_id = settings.AUTH_DEV_USER_ID
    role = settings.AUTH_DEV_ROLE
    return UserContext(
        user_id=user_id,
        role=role,
        email=f"{user_id}@rpc-lending.local",
        name="Dev User",
        email_verified=True,
        data_scope=build_data_scope(role, user_id),
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: the authenticated caller with their loan data scope."""
    if settings.AUTH_DISABLED:
        return _dev_user()

    token = _bearer_token(request)
    if not token:
        raise _unauthorized("Missing authentication token")

    try:
        payload = _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    role = _resolve_role(payload)
    return UserContext(
        user_id=payload.sub,
        role=role,
        email=payload.email,
        name=payload.name or payload.preferred_username,
        email_verified=payload.email_verified,
        data_scope=build_data_scope(role, payload.sub),
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory restricting a route to the given roles (403 otherwise)."""

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "RBAC denied: user=%s role=%s attempted route requiring %s",
                user.user_id,
                user.role.value,
                [r.value for r in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
