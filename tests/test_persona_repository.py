"""
Tests for the persona repository.
"""
from datetime import datetime
from uuid import uuid4

import pytest

from reflect.errors import ConstraintError, NotFoundError
from reflect.schemas import Persona, PersonaColor, PersonaPreset


def persona_for(user, name, **fields):
    fields.setdefault("created_at", datetime(2024, 2, 1, 9, 0))
    return Persona(name=name, user_id=user.id, **fields)


class TestPersonaCrud:
    """Test persona create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, persona_repo, persona):
        assert await persona_repo.fetch(persona.id) == persona
        assert await persona_repo.fetch(uuid4()) is None

    @pytest.mark.asyncio
    async def test_unknown_user_rejected(self, persona_repo):
        with pytest.raises(ConstraintError):
            await persona_repo.create(Persona(name="Work", user_id=uuid4()))

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, persona_repo, persona):
        clone = persona.model_copy(update={"name": "Other", "is_default": False})
        with pytest.raises(ConstraintError):
            await persona_repo.create(clone)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["Personal", "personal", "  PERSONAL "])
    async def test_names_unique_per_user_ignoring_case(self, persona_repo, user, persona, name):
        with pytest.raises(ConstraintError):
            await persona_repo.create(persona_for(user, name))
        assert not await persona_repo.is_persona_name_unique(name, user.id)
        assert await persona_repo.is_persona_name_unique(name, user.id, excluding_id=persona.id)

    @pytest.mark.asyncio
    async def test_rename_keeps_uniqueness(self, persona_repo, user, persona):
        work = await persona_repo.create(persona_for(user, "Work"))
        work.name = "PERSONAL"
        with pytest.raises(ConstraintError):
            await persona_repo.update(work)
        work.name = "Office"
        await persona_repo.update(work)
        assert (await persona_repo.fetch(work.id)).name == "Office"

    @pytest.mark.asyncio
    async def test_update_missing(self, persona_repo, user):
        with pytest.raises(NotFoundError):
            await persona_repo.update(persona_for(user, "Ghost"))

    @pytest.mark.asyncio
    async def test_delete_cascades_to_posts(self, persona_repo, post_repo, persona, make_post):
        post = await post_repo.create(make_post())
        await persona_repo.delete(persona.id)
        assert await post_repo.fetch(post.id) is None
        with pytest.raises(NotFoundError):
            await persona_repo.delete(persona.id)


class TestDefaultPersona:
    """Test that a user has at most one default persona."""

    async def _defaults(self, persona_repo, user):
        return [p for p in await persona_repo.fetch_personas(user.id) if p.is_default]

    @pytest.mark.asyncio
    async def test_set_default_is_exclusive(self, persona_repo, user, persona):
        work = await persona_repo.create(persona_for(user, "Work"))
        gym = await persona_repo.create(persona_for(user, "Gym"))

        for chosen in (work, gym, persona, gym):
            await persona_repo.set_default_persona(chosen.id, user.id)
            defaults = await self._defaults(persona_repo, user)
            assert [p.id for p in defaults] == [chosen.id]

    @pytest.mark.asyncio
    async def test_new_default_replaces_old(self, persona_repo, user, persona):
        work = await persona_repo.create(persona_for(user, "Work", is_default=True))
        assert (await persona_repo.fetch_default_persona(user.id)).id == work.id
        assert not (await persona_repo.fetch(persona.id)).is_default

    @pytest.mark.asyncio
    async def test_update_to_default_replaces_old(self, persona_repo, user, persona):
        work = await persona_repo.create(persona_for(user, "Work"))
        work.is_default = True
        await persona_repo.update(work)
        assert [p.id for p in await self._defaults(persona_repo, user)] == [work.id]

    @pytest.mark.asyncio
    async def test_default_moved_to_user_replaces_old(self, persona_repo, user, persona, other_user):
        work = await persona_repo.create(persona_for(other_user, "Work", is_default=True))
        work.user_id = user.id
        await persona_repo.update(work)
        assert [p.id for p in await self._defaults(persona_repo, user)] == [work.id]
        assert await self._defaults(persona_repo, other_user) == []

    @pytest.mark.asyncio
    async def test_default_listed_first(self, persona_repo, user, persona):
        await persona_repo.create(persona_for(user, "Early", created_at=datetime(2023, 1, 1)))
        personas = await persona_repo.fetch_personas(user.id)
        assert [p.name for p in personas] == ["Personal", "Early"]

    @pytest.mark.asyncio
    async def test_clear_default(self, persona_repo, user, persona):
        await persona_repo.clear_default_persona(user.id)
        assert await persona_repo.fetch_default_persona(user.id) is None

    @pytest.mark.asyncio
    async def test_foreign_persona_cannot_be_default(self, persona_repo, user, persona, other_user):
        stranger = await persona_repo.create(persona_for(other_user, "Work"))
        with pytest.raises(ConstraintError):
            await persona_repo.set_default_persona(stranger.id, user.id)
        assert (await persona_repo.fetch_default_persona(user.id)).id == persona.id

    @pytest.mark.asyncio
    async def test_set_default_missing_persona(self, persona_repo, user, persona):
        with pytest.raises(NotFoundError):
            await persona_repo.set_default_persona(uuid4(), user.id)


class TestPersonaQueries:
    """Test tier checks, presets and statistics."""

    @pytest.mark.asyncio
    async def test_tier_limits(self, persona_repo, user, persona):
        assert not await persona_repo.can_create_persona(user.id, is_premium=False)
        assert await persona_repo.can_create_persona(user.id, is_premium=True)
        for preset in (PersonaPreset.WORK, PersonaPreset.FITNESS, PersonaPreset.TRAVEL, PersonaPreset.FAMILY):
            await persona_repo.create_from_preset(preset, user.id)
        assert await persona_repo.fetch_persona_count(user.id) == 5
        assert not await persona_repo.can_create_persona(user.id, is_premium=True)

    @pytest.mark.asyncio
    async def test_create_from_preset(self, persona_repo, user, persona):
        work = await persona_repo.create_from_preset(PersonaPreset.WORK, user.id)
        stored = await persona_repo.fetch(work.id)
        assert stored.name == "Work"
        assert stored.color == PersonaColor.GRAY
        assert not stored.is_default

    @pytest.mark.asyncio
    async def test_fetch_by_color(self, persona_repo, user, persona):
        await persona_repo.create_from_preset(PersonaPreset.WORK, user.id)
        blue = await persona_repo.fetch_personas_with_color(PersonaColor.BLUE, user.id)
        assert [p.id for p in blue] == [persona.id]

    @pytest.mark.asyncio
    async def test_post_counts_include_empty_personas(self, persona_repo, post_repo, user, persona, make_post):
        work = await persona_repo.create(persona_for(user, "Work"))
        await post_repo.create_batch([make_post(), make_post()])
        counts = await persona_repo.fetch_post_counts_by_persona(user.id)
        assert counts == {persona.id: 2, work.id: 0}

    @pytest.mark.asyncio
    async def test_most_used_persona(self, persona_repo, post_repo, user, persona, make_post):
        work = await persona_repo.create(persona_for(user, "Work"))
        await post_repo.create_batch([make_post(persona_id=work.id) for _ in range(3)] + [make_post()])
        best, count = await persona_repo.fetch_most_used_persona(user.id)
        assert (best.id, count) == (work.id, 3)

    @pytest.mark.asyncio
    async def test_most_used_tie_goes_to_default(self, persona_repo, user, persona):
        await persona_repo.create(persona_for(user, "Early", created_at=datetime(2020, 1, 1)))
        best, count = await persona_repo.fetch_most_used_persona(user.id)
        assert (best.id, count) == (persona.id, 0)

    @pytest.mark.asyncio
    async def test_most_used_without_personas(self, persona_repo, user):
        assert await persona_repo.fetch_most_used_persona(user.id) is None

    @pytest.mark.asyncio
    async def test_delete_all_personas(self, persona_repo, user, persona):
        await persona_repo.create_from_preset(PersonaPreset.WORK, user.id)
        assert await persona_repo.delete_all_personas(user.id) == 2
        assert await persona_repo.fetch_personas(user.id) == []
