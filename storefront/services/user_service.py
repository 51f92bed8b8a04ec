# storefront/services/user_service.py
import logging

from pydantic import ValidationError

from storefront.core.errors import MalformedResponse, Unauthorized
from storefront.core.session import SessionContext
from storefront.repositories.resource_client import ResourceClient
from storefront.schemas.user import Identity, IdentityUpdate

logger = logging.getLogger("storefront.users")

RESOURCE = "users"


class UserService:
    """
    Profile of the signed-in identity.

    Updates go to the backend first; the session is only updated with
    what the backend accepted.
    """

    def __init__(self, session: SessionContext, client: ResourceClient):
        self.session = session
        self.client = client

    def _require_identity(self) -> Identity:
        identity = self.session.identity
        if identity is None:
            raise Unauthorized("Sign in to manage your profile")
        return identity

    def get_profile(self) -> Identity:
        identity = self._require_identity()
        body = self.client.get(RESOURCE, identity.id)
        try:
            profile = Identity.model_validate(body)
        except ValidationError as e:
            raise MalformedResponse(RESOURCE, body) from e
        self.session.update_user(profile.model_dump(exclude={"id"}))
        return profile

    def update_profile(self, payload: IdentityUpdate) -> Identity:
        identity = self._require_identity()
        changes = payload.model_dump(exclude_unset=True)
        body = self.client.update(RESOURCE, identity.id, changes)
        try:
            profile = Identity.model_validate(body)
        except ValidationError as e:
            raise MalformedResponse(RESOURCE, body) from e
        logger.info(f"Profile updated for user {identity.id}: {sorted(changes)}")
        return self.session.update_user(profile.model_dump(exclude={"id"}))
