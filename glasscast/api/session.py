from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from glasscast.schemas.city import SessionCreate, SessionResponse
from glasscast.services.dependencies import get_owner_session
from glasscast.services.session import OwnerSession

router = APIRouter()


@router.post("", response_model=SessionResponse)
async def sign_in(
    payload: SessionCreate,
    session: OwnerSession = Depends(get_owner_session),
) -> SessionResponse:
    """Record the owner id established by the external sign-in flow."""

    session.sign_in(payload.owner_id)
    return SessionResponse(owner_id=session.owner_id(), signed_in=True)


@router.get("", response_model=SessionResponse)
async def current_session(
    session: OwnerSession = Depends(get_owner_session),
) -> SessionResponse:
    return SessionResponse(owner_id=session.owner_id(), signed_in=session.is_signed_in)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(session: OwnerSession = Depends(get_owner_session)) -> Response:
    await session.sign_out()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
