"""
Persona store protocol and the in-memory implementation.

A store answers one question: "which persona does ``identifier`` name in
``tenant_id``?"  ``identifier`` may be a persona ID or a persona name; an
ID match is preferred when both exist.  A miss returns ``None``.

``lookup`` may be a coroutine function or a plain blocking function; the
context builder awaits the former and runs the latter in a worker thread.

JSON seed format (``InMemoryPersonaStore.from_json_file``)::

    {"personas": [
        {"persona_id": "p-budget", "name": "budget_shopper",
         "tenant_id": "demo", "attributes": {...}},
        ...
    ]}

A bare top-level list of persona objects is accepted as well.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Awaitable, Iterable, Optional, Protocol, Union

from persona_engine.exceptions import PersonaStoreError
from persona_engine.models.persona import PersonaProfile

logger = logging.getLogger(__name__)


class PersonaStore(Protocol):
    def lookup(
        self, tenant_id: str, identifier: str
    ) -> Union[Optional[PersonaProfile], Awaitable[Optional[PersonaProfile]]]:
        ...


def match_persona(
    profiles: Iterable[PersonaProfile], tenant_id: str, identifier: str
) -> Optional[PersonaProfile]:
    """Pick the persona named by ``identifier`` inside ``tenant_id``.

    An ID match wins over a name match.
    """
    by_name: Optional[PersonaProfile] = None
    for profile in profiles:
        if profile.tenant_id != tenant_id:
            continue
        if profile.persona_id == identifier:
            return profile
        if by_name is None and profile.name == identifier:
            by_name = profile
    return by_name


class InMemoryPersonaStore:
    """Persona store backed by a list held in memory."""

    def __init__(self, profiles: Iterable[PersonaProfile] = ()) -> None:
        self._profiles: list[PersonaProfile] = list(profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    @classmethod
    def from_json_file(cls, path: Path | str) -> "InMemoryPersonaStore":
        """Load personas from a JSON seed file.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            PersonaStoreError: If the file is not valid JSON or a record
                fails validation.
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as exc:
                raise PersonaStoreError(f"{path}: invalid JSON ({exc})") from exc

        records = raw.get("personas", []) if isinstance(raw, dict) else raw
        if not isinstance(records, list):
            raise PersonaStoreError(f"{path}: expected a list of persona records")

        profiles: list[PersonaProfile] = []
        for i, record in enumerate(records):
            try:
                profiles.append(PersonaProfile.model_validate(record))
            except ValueError as exc:
                raise PersonaStoreError(f"{path}: persona #{i} is invalid: {exc}") from exc

        logger.info("Loaded %d personas from %s", len(profiles), path)
        return cls(profiles)

    async def lookup(self, tenant_id: str, identifier: str) -> Optional[PersonaProfile]:
        return match_persona(self._profiles, tenant_id, identifier)
