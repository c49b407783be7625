"""
Request identity resolution.

The identity of every request (subject, email, display name, roles and the
tenant/family it belongs to) comes from bearer-token claims. Two strategies
are available, picked by ``settings.auth_mode``:

- ``auth0``: RS256 tokens verified against the issuer's JWKS
- ``mock``: local development; claims are read from an unverified token (or
  a fixed dev user) and a tenant and roles are injected when missing
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing_extensions import Annotated

from taskpilot.core.config import Settings

import logging

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Missing, malformed or unverifiable bearer token."""


@dataclass(frozen=True)
class Identity:
    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    tenant_id: Optional[str] = None
    roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def display_name(self) -> Optional[str]:
        return self.name or self.email


def identity_from_claims(claims: dict[str, Any], namespace: str) -> Identity:
    """Map token claims onto an Identity. Standard claims win over namespaced ones."""
    email = claims.get("email") or claims.get(f"{namespace}email")
    name = (
        claims.get("name")
        or claims.get(f"{namespace}name")
        or claims.get("nickname")
        or email
    )
    roles = claims.get(f"{namespace}roles") or []
    if isinstance(roles, str):
        roles = [roles]

    return Identity(
        sub=str(claims.get("sub", "")),
        email=email,
        name=name,
        tenant_id=claims.get(f"{namespace}tenant"),
        roles=tuple(roles),
    )


class IdentityResolver(ABC):
    def __init__(self, namespace: str):
        self.namespace = namespace

    @abstractmethod
    async def resolve(self, token: str | None) -> Identity:
        """Return the caller's identity or raise AuthenticationError."""


class Auth0IdentityResolver(IdentityResolver):
    def __init__(
        self,
        issuer: str,
        audience: str,
        namespace: str,
        jwks_client: jwt.PyJWKClient | None = None,
    ):
        super().__init__(namespace)
        self.issuer = issuer
        self.audience = audience
        self.jwks_client = jwks_client or jwt.PyJWKClient(
            f"{issuer}.well-known/jwks.json", cache_keys=True
        )

    def _decode(self, token: str) -> dict:
        signing_key = self.jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=self.audience,
            issuer=self.issuer,
        )

    async def resolve(self, token: str | None) -> Identity:
        if not token:
            raise AuthenticationError("Missing or invalid Authorization token")

        try:
            # JWKS fetches are blocking HTTP calls
            claims = await run_in_threadpool(self._decode, token)
        except jwt.PyJWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise AuthenticationError(str(e)) from e

        return identity_from_claims(claims, self.namespace)


class MockIdentityResolver(IdentityResolver):
    DEV_CLAIMS = {
        "sub": "mock|dev-user",
        "email": "dev@taskpilot.local",
        "name": "Dev User",
    }

    def __init__(self, namespace: str, tenant: str, roles: list[str]):
        super().__init__(namespace)
        self.tenant = tenant
        self.roles = list(roles)

    async def resolve(self, token: str | None) -> Identity:
        claims = dict(self.DEV_CLAIMS)
        if token:
            try:
                claims = jwt.decode(token, options={"verify_signature": False})
            except jwt.PyJWTError as e:
                raise AuthenticationError(str(e)) from e

        if not claims.get(f"{self.namespace}tenant"):
            claims[f"{self.namespace}tenant"] = self.tenant
        if not claims.get(f"{self.namespace}roles"):
            claims[f"{self.namespace}roles"] = self.roles

        return identity_from_claims(claims, self.namespace)


def build_identity_resolver(settings: Settings) -> IdentityResolver:
    mode = settings.auth_mode.strip().casefold()

    if mode == "mock":
        logger.warning("Mock identity enabled: tokens are NOT verified")
        return MockIdentityResolver(
            settings.claim_namespace, settings.mock_tenant, settings.mock_roles
        )

    if mode == "auth0":
        if not settings.auth0_domain or not settings.auth0_audience:
            logger.warning("AUTH0_DOMAIN/AUTH0_AUDIENCE not set; all tokens will be rejected")
        return Auth0IdentityResolver(
            settings.auth0_issuer, settings.auth0_audience, settings.claim_namespace
        )

    raise ValueError(f"Unknown auth_mode: {settings.auth_mode!r}")


# Dependencies
# ━━━━━━━━━━━━

bearer_scheme = HTTPBearer(auto_error=False)


async def get_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    resolver: IdentityResolver = request.app.state.identity_resolver
    token = credentials.credentials if credentials else None

    try:
        return await resolver.resolve(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unauthorized: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_tenant(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Family context is required",
        )
    return identity


def require_role(role: str):
    async def check_role(identity: Identity = Depends(get_identity)) -> Identity:
        if role not in identity.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "Forbidden",
                    "required_role": role,
                    "roles_present": list(identity.roles),
                },
            )
        return identity

    return check_role


IdentityDep = Annotated[Identity, Depends(get_identity)]
TenantIdentityDep = Annotated[Identity, Depends(require_tenant)]
