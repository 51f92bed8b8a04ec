# storefront/core/session.py
import json
import logging
import time
from typing import Any, Callable

from jose import jwt, JWTError

from storefront.repositories.storage_repo import KeyValueStore
from storefront.schemas.user import Identity

logger = logging.getLogger("storefront.session")

AUTH_STORAGE_KEY = "auth-storage"
GUEST_SCOPE = "guest"

ScopeListener = Callable[[Identity | None], None]


def token_expired(token: str, now: float | None = None) -> bool:
    """
    Check the `exp` claim of a bearer token without verifying it.

    Signature verification is the backend's job; the storefront only
    avoids sending a token it already knows is stale. Opaque
    (non-JWT) tokens and tokens without `exp` never expire here.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) <= (now if now is not None else time.time())
    except (TypeError, ValueError):
        return False


class SessionContext:
    """
    Authenticated identity + bearer credential, persisted across restarts.

    Passed explicitly to the cart engine and the order/delivery services.
    Consumers that depend on the identity (the cart scope) register with
    `subscribe()` and are called synchronously whenever the scope key
    changes (login, logout, switching accounts).

    Guest mode:
      - no identity => scope key "guest", no bearer header.
    """

    def __init__(self, store: KeyValueStore | None = None):
        self.store = store
        self._identity: Identity | None = None
        self._token: str | None = None
        self._listeners: list[ScopeListener] = []
        if store is not None:
            self._restore()

    # ----- Queries -----

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def token(self) -> str | None:
        """Bearer credential, or None when absent or already expired."""
        if self._token is None:
            return None
        if token_expired(self._token):
            logger.info("Stored token has expired; requests go out unauthenticated")
            return None
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None and self.token is not None

    @property
    def role(self) -> str | None:
        return self._identity.role if self._identity else None

    @property
    def scope_key(self) -> str:
        if self._identity is None:
            return GUEST_SCOPE
        return str(self._identity.id)

    def is_admin(self) -> bool:
        return self.role == "admin"

    def is_user(self) -> bool:
        return self.role == "user"

    def is_driver(self) -> bool:
        return self.role == "driver"

    # ----- Mutators -----

    def login(self, user: Identity, token: str) -> None:
        previous = self.scope_key
        self._identity = user
        self._token = token
        self._persist()
        logger.info(f"Logged in as {user.email} (role={user.role})")
        self._notify_if_changed(previous)

    def logout(self) -> None:
        previous = self.scope_key
        self._identity = None
        self._token = None
        self._persist()
        logger.info("Logged out")
        self._notify_if_changed(previous)

    def update_user(self, changes: dict[str, Any]) -> Identity | None:
        """
        Merge profile changes into the current identity.

        No-op for guests. The id cannot change through this path.
        """
        if self._identity is None:
            return None
        data = self._identity.model_dump()
        data.update({k: v for k, v in changes.items() if k != "id"})
        self._identity = Identity.model_validate(data)
        self._persist()
        return self._identity

    def set_token(self, token: str) -> None:
        self._token = token
        self._persist()

    # ----- Scope subscription -----

    def subscribe(self, listener: ScopeListener) -> Callable[[], None]:
        """
        Register a scope-change listener.

        Returns:
            A callable that unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_if_changed(self, previous_scope: str) -> None:
        if previous_scope == self.scope_key:
            return
        for listener in list(self._listeners):
            listener(self._identity)

    # ----- Persistence -----

    def _persist(self) -> None:
        if self.store is None:
            return
        snapshot = {
            "user": self._identity.model_dump(mode="json") if self._identity else None,
            "token": self._token,
            "isAuthenticated": self._identity is not None,
        }
        self.store.set(AUTH_STORAGE_KEY, json.dumps(snapshot))

    def _restore(self) -> None:
        raw = self.store.get(AUTH_STORAGE_KEY)
        if not raw:
            return
        try:
            snapshot = json.loads(raw)
            user = snapshot.get("user")
            self._identity = Identity.model_validate(user) if user else None
            self._token = snapshot.get("token")
        except (ValueError, TypeError) as e:
            # pydantic.ValidationError is a ValueError
            logger.warning(f"Discarding unreadable persisted session: {e}")
            self._identity = None
            self._token = None
