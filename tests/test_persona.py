from __future__ import annotations

import pytest

from app.chat_context import build_prompt, context_key, render_history
from app.persona import CharacterRegistry
from memory.context import ContextPair


class CharacterRegistryTests:
    def setup_method(self) -> None:
        self.registry = CharacterRegistry()

    def test_resolve_known_character_is_case_insensitive(self) -> None:
        profile = self.registry.resolve(" Vampire ")
        assert profile.id == "vampire"
        assert profile.name == "Count Nocturne"
        assert profile.sampling()["temperature"] == 0.85

    @pytest.mark.parametrize("character_id", [None, "", "mummy"])
    def test_unknown_character_falls_back_to_default(self, character_id: str | None) -> None:
        assert self.registry.resolve(character_id).id == "spooky"

    def test_listing_hides_system_prompts(self) -> None:
        listing = self.registry.listing()
        assert {item["id"] for item in listing} >= {"spooky", "vampire", "witch", "werewolf", "zombie"}
        assert all(set(item) == {"id", "name", "greeting"} for item in listing)

    def test_custom_profiles_need_the_default(self) -> None:
        with pytest.raises(ValueError):
            CharacterRegistry({"ghost": {"name": "Ghost"}}, default_id="spooky")
        registry = CharacterRegistry({"ghost": {"system_prompt": "Boo."}}, default_id="ghost")
        assert registry.resolve("anything").name == "Ghost"
        assert "ghost" in registry


class PromptBuilderTests:
    def test_context_key_scopes_by_session_and_character(self) -> None:
        assert context_key("abc", "witch") == "abc:witch"

    def test_build_prompt_without_history(self) -> None:
        assert build_prompt("You are a ghost.", [], "hi") == "You are a ghost.\n\nUser: hi\nAssistant:"

    def test_build_prompt_orders_history_chronologically(self) -> None:
        pairs = [ContextPair("first", "one"), ContextPair("second", "two")]
        assert render_history(pairs) == "User: first\nAssistant: one\n\nUser: second\nAssistant: two\n\n"
        prompt = build_prompt("SYS", pairs, "third")
        assert prompt == (
            "SYS\n\nUser: first\nAssistant: one\n\nUser: second\nAssistant: two\n\nUser: third\nAssistant:"
        )
