import time
import httpx
from jose import jwt

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class JWKSCache:
    def __init__(self, jwks_url: str, ttl_seconds: int = 3600):
        self.jwks_url = jwks_url
        self.ttl = ttl_seconds
        self._jwks = None
        self._fetched_at = 0.0

    async def get(self) -> dict:
        now = time.time()
        if self._jwks is None or (now - self._fetched_at) > self.ttl:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(self.jwks_url)
                resp.raise_for_status()
                self._jwks = resp.json()
                self._fetched_at = now
        return self._jwks

    def clear(self) -> None:
        self._jwks = None
        self._fetched_at = 0.0

    async def verify(self, token: str, audience: str | None = None, issuers: tuple[str, ...] = ()) -> dict:
        jwks = await self.get()
        headers = jwt.get_unverified_header(token)
        kid = headers.get("kid")
        key = next((k for k in jwks["keys"] if k["kid"] == kid), None)
        if not key:
            # Keys rotate; force refresh once if kid not found
            self._jwks = None
            jwks = await self.get()
            key = next((k for k in jwks["keys"] if k["kid"] == kid), None)
        if not key:
            raise ValueError("Signing key not found for token")

        claims = jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            audience=audience,
            options={"verify_aud": audience is not None, "verify_at_hash": False},
        )
        if issuers and claims.get("iss") not in issuers:
            raise ValueError(f"Unexpected token issuer: {claims.get('iss')}")
        return claims


GOOGLE_JWKS = JWKSCache(GOOGLE_JWKS_URL, ttl_seconds=3600)
