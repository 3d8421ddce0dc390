"""Character profiles: who the model pretends to be for each chat."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.constants import CHARACTER_PROFILES, DEFAULT_CHARACTER_ID


@dataclass(frozen=True, slots=True)
class CharacterProfile:
    id: str
    name: str
    greeting: str
    system_prompt: str
    temperature: float = 0.8
    max_tokens: int = 300

    def sampling(self) -> dict[str, Any]:
        return {"temperature": self.temperature, "max_tokens": self.max_tokens}

    def public_view(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "greeting": self.greeting}


class CharacterRegistry:
    """Lookup table of profiles with a guaranteed default."""

    def __init__(
        self,
        profiles: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        default_id: str = DEFAULT_CHARACTER_ID,
    ) -> None:
        source = profiles if profiles is not None else CHARACTER_PROFILES
        self._profiles: dict[str, CharacterProfile] = {
            key: _build_profile(key, raw) for key, raw in source.items()
        }
        if default_id not in self._profiles:
            raise ValueError(f"Default character '{default_id}' is not defined.")
        self.default_id = default_id

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._profiles

    def resolve(self, character_id: str | None) -> CharacterProfile:
        """Return the profile for ``character_id``, or the default one."""
        key = (character_id or "").strip().lower()
        return self._profiles.get(key) or self._profiles[self.default_id]

    def listing(self) -> list[dict[str, str]]:
        return [profile.public_view() for profile in self._profiles.values()]


def _build_profile(key: str, raw: Mapping[str, Any]) -> CharacterProfile:
    return CharacterProfile(
        id=key,
        name=str(raw.get("name") or key.title()),
        greeting=str(raw.get("greeting") or ""),
        system_prompt=str(raw.get("system_prompt") or ""),
        temperature=float(raw.get("temperature", 0.8)),
        max_tokens=int(raw.get("max_tokens", 300)),
    )


__all__ = ["CharacterProfile", "CharacterRegistry"]
