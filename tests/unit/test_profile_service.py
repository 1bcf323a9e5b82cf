"""Unit tests for profile_service module."""

import pytest

from neighborly.domain.profile import ActorRole
from neighborly.services import profile_service


@pytest.mark.unit
class TestResolveActor:
    async def test_known_profile_resolves_to_actor(self, patched_db):
        profile = await profile_service.create_profile(full_name="Ada Admin", role=ActorRole.ADMIN)

        actor = await profile_service.resolve_actor(profile.id)

        assert actor is not None
        assert actor.id == profile.id
        assert actor.is_admin

    @pytest.mark.parametrize("profile_id", [None, "", "404"])
    async def test_missing_or_unknown_profile_is_anonymous(self, patched_db, profile_id):
        assert await profile_service.resolve_actor(profile_id) is None

    async def test_get_profile(self, patched_db):
        created = await profile_service.create_profile(full_name="Val Volunteer", location="Leeds")

        profile = await profile_service.get_profile(profile_id=created.id)

        assert profile.full_name == "Val Volunteer"
        assert profile.location == "Leeds"
        assert profile.role == ActorRole.INDIVIDUAL
