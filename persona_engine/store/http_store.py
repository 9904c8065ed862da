"""
HTTP persona store client.

    GET {base_url}/tenants/{tenant_id}/personas/{identifier}

200 → persona JSON (``PersonaProfile`` shape), 404 → miss (``None``),
anything else → ``PersonaStoreError``.  Path segments are URL-quoted.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from persona_engine.exceptions import PersonaStoreError
from persona_engine.models.persona import PersonaProfile

logger = logging.getLogger(__name__)


class HttpPersonaStore:
    """Async persona store backed by a REST service.

    Args:
        base_url:  Service root, e.g. ``"http://personas:8080/v1"``.
        timeout_s: Transport timeout per call.
        transport: Optional custom transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport

    async def lookup(self, tenant_id: str, identifier: str) -> Optional[PersonaProfile]:
        url = (
            f"{self.base_url}/tenants/{quote(tenant_id, safe='')}"
            f"/personas/{quote(identifier, safe='')}"
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            raise PersonaStoreError(f"GET {url} failed: {exc}") from exc

        if resp.status_code == 404:
            logger.debug("Persona %r not found for tenant %r", identifier, tenant_id)
            return None
        if resp.status_code != 200:
            raise PersonaStoreError(f"GET {url} returned HTTP {resp.status_code}")

        try:
            return PersonaProfile.model_validate(resp.json())
        except ValueError as exc:
            raise PersonaStoreError(f"GET {url}: unusable persona payload: {exc}") from exc
