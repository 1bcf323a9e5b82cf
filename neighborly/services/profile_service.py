"""Read access to actor profiles for resolving the current actor."""

import logging

from neighborly.core import db_client
from neighborly.core.config import settings
from neighborly.core.db_client import RecordNotFoundError
from neighborly.core.logging import span
from neighborly.domain.profile import Actor, ActorRole, Profile


logger = logging.getLogger(__name__)


async def get_profile(*, profile_id: str, timeout: float | None = None) -> Profile | None:
    """Get a profile by ID, or None if it does not exist."""
    with span("profile_service.get_profile"):
        bound = settings.store_timeout_seconds if timeout is None else timeout
        try:
            record = await db_client.call_with_timeout(
                db_client.get_record(collection="profiles", record_id=profile_id), timeout=bound
            )
        except RecordNotFoundError:
            logger.info("Profile not found: %s", profile_id)
            return None
        return Profile.model_validate(record)


async def resolve_actor(profile_id: str | None) -> Actor | None:
    """Resolve the authenticated actor for a profile ID; unknown or missing IDs give None."""
    if not profile_id:
        return None
    profile = await get_profile(profile_id=profile_id)
    return profile.as_actor() if profile else None


async def create_profile(
    *,
    full_name: str,
    location: str = "",
    role: ActorRole = ActorRole.INDIVIDUAL,
) -> Profile:
    """Insert a profile record (used by seeding scripts and tests)."""
    with span("profile_service.create_profile"):
        record = await db_client.create_record(
            collection="profiles",
            data={"full_name": full_name, "location": location, "role": role.value},
        )
        logger.info("Created profile %s (%s)", record["id"], role)
        return Profile.model_validate(record)
