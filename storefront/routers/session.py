# storefront/routers/session.py
from fastapi import APIRouter, Body, Depends

from storefront.core.session import SessionContext
from storefront.deps import get_session_context, get_user_service
from storefront.schemas.user import Identity, IdentityUpdate, LoginPayload, SessionRead
from storefront.services.user_service import UserService

router = APIRouter(prefix="/session", tags=["Session"])


def _read(session: SessionContext) -> SessionRead:
    return SessionRead(
        is_authenticated=session.is_authenticated,
        user=session.identity,
        scope_key=session.scope_key,
    )


@router.get("", response_model=SessionRead)
def get_session_state(session: SessionContext = Depends(get_session_context)):
    """Current identity and cart scope."""
    return _read(session)


@router.post("/login", response_model=SessionRead)
def login(
    payload: LoginPayload,
    session: SessionContext = Depends(get_session_context),
):
    """
    Store the identity and token issued by the backend.

    Switching identity also switches the active cart.
    """
    session.login(payload.user, payload.token)
    return _read(session)


@router.post("/logout", response_model=SessionRead)
def logout(session: SessionContext = Depends(get_session_context)):
    """Drop the identity; the guest cart becomes active."""
    session.logout()
    return _read(session)


@router.put("/token", response_model=SessionRead)
def replace_token(
    token: str = Body(..., embed=True),
    session: SessionContext = Depends(get_session_context),
):
    session.set_token(token)
    return _read(session)


@router.get("/profile", response_model=Identity)
def get_profile(service: UserService = Depends(get_user_service)):
    return service.get_profile()


@router.patch("/profile", response_model=Identity)
def update_profile(
    payload: IdentityUpdate,
    service: UserService = Depends(get_user_service),
):
    """
    Update name / address / phone of the signed-in identity.

    The backend is updated first, then the session copy.
    """
    return service.update_profile(payload)
