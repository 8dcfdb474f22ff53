"""
Tests for the user repository.
"""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from reflect.errors import ConstraintError, NotFoundError
from reflect.schemas import LockTimeout, Persona, User, UserPreferences

NOW = datetime(2026, 6, 15, 12, 0, 0)


class TestUserCrud:
    """Test the single-user store."""

    @pytest.mark.asyncio
    async def test_no_user_initially(self, user_repo):
        assert not await user_repo.has_user()
        assert await user_repo.fetch_current_user() is None

    @pytest.mark.asyncio
    async def test_create_initial_user(self, user_repo):
        user = await user_repo.create_initial_user("Ann", bio="hi", email="ann@example.com")
        assert await user_repo.has_user()
        current = await user_repo.fetch_current_user()
        assert current.id == user.id
        assert current.email == "ann@example.com"

    @pytest.mark.asyncio
    async def test_second_user_refused(self, user_repo, user):
        with pytest.raises(ConstraintError):
            await user_repo.create(User(name="Bo"))
        assert (await user_repo.fetch_current_user()).id == user.id

    @pytest.mark.asyncio
    async def test_update_replaces_record(self, user_repo, user):
        user.bio = "new bio"
        user.longest_streak = 4
        await user_repo.update(user)
        assert await user_repo.fetch(user.id) == user

    @pytest.mark.asyncio
    async def test_update_missing_user(self, user_repo):
        with pytest.raises(NotFoundError):
            await user_repo.update(User(name="Ghost"))

    @pytest.mark.asyncio
    async def test_delete_cascades(self, user_repo, persona_repo, post_repo, user, make_post):
        await post_repo.create(make_post())
        await user_repo.delete_user_data(user.id)
        assert not await user_repo.has_user()
        assert await persona_repo.fetch_all() == []
        assert await post_repo.fetch_post_count() == 0
        with pytest.raises(NotFoundError):
            await user_repo.delete(user.id)


class TestUserFields:
    """Test targeted field updates."""

    @pytest.mark.asyncio
    async def test_preferences(self, user_repo, user):
        prefs = UserPreferences(app_lock_enabled=True, lock_timeout=LockTimeout.ONE_HOUR)
        updated = await user_repo.update_preferences(user.id, prefs)
        assert updated.updated_at is not None
        stored = await user_repo.fetch_preferences(user.id)
        assert stored.app_lock_enabled
        assert stored.lock_timeout.seconds == 3600

    @pytest.mark.asyncio
    async def test_preferences_of_missing_user(self, user_repo):
        with pytest.raises(NotFoundError):
            await user_repo.fetch_preferences(uuid4())

    @pytest.mark.asyncio
    async def test_premium_status(self, user_repo, user):
        await user_repo.update_premium_status(user.id, True, NOW + timedelta(days=30))
        assert await user_repo.has_active_premium(user.id, NOW)
        assert not await user_repo.has_active_premium(user.id, NOW + timedelta(days=31))

    @pytest.mark.asyncio
    async def test_statistics(self, user_repo, user):
        await user_repo.update_statistics(user.id, total_posts=10, current_streak=2, longest_streak=6)
        stats = await user_repo.fetch_statistics(user.id)
        assert (stats.total_posts, stats.current_streak, stats.longest_streak) == (10, 2, 6)

    @pytest.mark.asyncio
    async def test_post_counter_floor_is_zero(self, user_repo, user):
        await user_repo.increment_post_count(user.id)
        await user_repo.increment_post_count(user.id)
        await user_repo.decrement_post_count(user.id)
        assert (await user_repo.fetch(user.id)).total_posts == 1
        await user_repo.decrement_post_count(user.id)
        await user_repo.decrement_post_count(user.id)
        assert (await user_repo.fetch(user.id)).total_posts == 0

    @pytest.mark.asyncio
    async def test_streaks(self, user_repo, user):
        await user_repo.update_streaks(user.id, current_streak=3, longest_streak=9)
        stored = await user_repo.fetch(user.id)
        assert (stored.current_streak, stored.longest_streak) == (3, 9)

    @pytest.mark.asyncio
    async def test_profile(self, user_repo, user):
        await user_repo.update_profile(user.id, "Annie", None)
        await user_repo.update_profile_photo(user.id, "me.jpg")
        stored = await user_repo.fetch(user.id)
        assert stored.name == "Annie"
        assert stored.bio is None
        assert stored.profile_photo_filename == "me.jpg"

    @pytest.mark.asyncio
    async def test_invalid_profile_change_is_not_written(self, user_repo, user):
        with pytest.raises(ValidationError):
            await user_repo.update_profile(user.id, "", None)
        assert (await user_repo.fetch(user.id)).name == "Ann"


class TestUserPersonas:
    """Test persona ownership and export."""

    @pytest.mark.asyncio
    async def test_persona_ids_follow_ownership(self, user_repo, persona_repo, user, persona, other_user):
        work = await persona_repo.create(Persona(name="Work", user_id=other_user.id))
        assert await user_repo.fetch_persona_ids(user.id) == [persona.id]

        await user_repo.add_persona(user.id, work.id)
        assert set(await user_repo.fetch_persona_ids(user.id)) == {persona.id, work.id}
        assert await user_repo.fetch_persona_ids(other_user.id) == []

        await user_repo.add_persona(user.id, work.id)
        assert len(await user_repo.fetch_persona_ids(user.id)) == 2

    @pytest.mark.asyncio
    async def test_added_default_displaces_current_default(self, user_repo, persona_repo, user, persona, other_user):
        work = await persona_repo.create(Persona(name="Work", is_default=True, user_id=other_user.id))
        await user_repo.add_persona(user.id, work.id)

        defaults = [p for p in await persona_repo.fetch_personas(user.id) if p.is_default]
        assert [p.id for p in defaults] == [work.id]
        assert (await persona_repo.fetch_default_persona(user.id)).id == work.id

    @pytest.mark.asyncio
    async def test_added_persona_name_must_be_free(self, user_repo, persona_repo, user, persona, other_user):
        twin = await persona_repo.create(Persona(name="personal", user_id=other_user.id))
        with pytest.raises(ConstraintError):
            await user_repo.add_persona(user.id, twin.id)
        assert (await persona_repo.fetch(twin.id)).user_id == other_user.id
        assert await user_repo.fetch_persona_ids(user.id) == [persona.id]

    @pytest.mark.asyncio
    async def test_remove_persona_deletes_its_posts(self, user_repo, persona_repo, post_repo, user, persona, make_post):
        work = await persona_repo.create(Persona(name="Work", user_id=user.id))
        await post_repo.create_batch([make_post(), make_post(persona_id=work.id)])

        await user_repo.remove_persona(user.id, work.id)
        assert await user_repo.fetch_persona_ids(user.id) == [persona.id]
        assert await persona_repo.fetch(work.id) is None
        assert {p.persona_id for p in await post_repo.fetch_all()} == {persona.id}

    @pytest.mark.asyncio
    async def test_remove_foreign_persona_refused(self, user_repo, persona_repo, user, persona, other_user):
        work = await persona_repo.create(Persona(name="Work", user_id=other_user.id))
        with pytest.raises(ConstraintError):
            await user_repo.remove_persona(user.id, work.id)
        assert (await persona_repo.fetch(work.id)).user_id == other_user.id

    @pytest.mark.asyncio
    async def test_add_unknown_persona(self, user_repo, user):
        with pytest.raises(NotFoundError):
            await user_repo.add_persona(user.id, uuid4())

    @pytest.mark.asyncio
    async def test_export(self, user_repo, post_repo, user, persona, make_post):
        await post_repo.create_batch([make_post(caption="a"), make_post(caption="b")])
        export = await user_repo.export_user_data(user.id)
        assert export.user.id == user.id
        assert [p.id for p in export.personas] == [persona.id]
        assert {p.caption for p in export.posts} == {"a", "b"}

    @pytest.mark.asyncio
    async def test_export_missing_user(self, user_repo):
        with pytest.raises(NotFoundError):
            await user_repo.export_user_data(uuid4())
