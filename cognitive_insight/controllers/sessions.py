"""Interview session controller: start, observe and cancel voice sessions."""

import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from cognitive_insight.domain.models import SessionSnapshot
from cognitive_insight.services.question_bank import QuestionBankError
from cognitive_insight.session.errors import SpeechUnsupportedError
from cognitive_insight.session.registry import SessionBusyError, SessionHandle
from cognitive_insight.views import ErrorResponse, SessionStartResponse

from .dependencies import RegistryDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _require(handle: SessionHandle | None, session_id: str) -> SessionHandle:
    if handle is None or handle.latest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    return handle


@router.post(
    "",
    response_model=SessionStartResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def start_session(registry: RegistryDep) -> SessionStartResponse:
    """Start an interview on this host's microphone and speaker."""

    try:
        handle = registry.start()
    except SessionBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (SpeechUnsupportedError, QuestionBankError) as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return SessionStartResponse(session_id=handle.session_id, state=handle.latest.state)


@router.get(
    "/{session_id}",
    response_model=SessionSnapshot,
    responses={404: {"model": ErrorResponse}},
)
async def get_session_snapshot(session_id: str, registry: RegistryDep) -> SessionSnapshot:
    return _require(registry.get(session_id), session_id).latest


@router.post(
    "/{session_id}/cancel",
    response_model=SessionSnapshot,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_session(session_id: str, registry: RegistryDep) -> SessionSnapshot:
    handle = _require(registry.get(session_id), session_id)
    await registry.cancel(session_id)
    return handle.latest


@router.websocket("/{session_id}/events")
async def session_events(websocket: WebSocket, session_id: str, registry: RegistryDep) -> None:
    """Push a snapshot on every change; closes once the session has finished."""

    handle = registry.get(session_id)
    if handle is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    queue = handle.subscribe()
    try:
        while True:
            snapshot: SessionSnapshot = await queue.get()
            await websocket.send_json(snapshot.model_dump(mode="json"))
            if snapshot.terminal:
                break
    except WebSocketDisconnect:
        logger.debug("Event subscriber for session %s disconnected", session_id)
        return
    finally:
        handle.unsubscribe(queue)
    await websocket.close()
