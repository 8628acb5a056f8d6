"""
Live session stream - pushes team deltas to open team pages over WebSocket.

Connect to /ws/teams/{team_id}?code=1234. The first message is either an
error notification (TeamNotFound / AccessCodeRequired, then the socket
closes) or TeamLoaded with the full snapshot; every later message is a
delta produced by a mutation of that team.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from loguru import logger
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from teamplanner.database import get_session
from teamplanner.errors import AccessCodeRequired, TeamNotFound
from teamplanner.schemas import Notification, NotificationKind
from teamplanner.services.broadcast import QueueSubscriber
from teamplanner.services.registry import registry

router = APIRouter(tags=["sessions"])


async def _pump(websocket: WebSocket, subscriber: QueueSubscriber) -> None:
    while True:
        message = await subscriber.next_message()
        await websocket.send_json(message)


@router.websocket("/ws/teams/{team_id}")
async def team_updates(
    websocket: WebSocket,
    team_id: str,
    code: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    await websocket.accept()

    try:
        team = await run_in_threadpool(registry.authorize, session, team_id, code)
    except TeamNotFound:
        await websocket.send_json(
            Notification(kind=NotificationKind.TEAM_NOT_FOUND, team_id=team_id).to_message()
        )
        await websocket.close()
        return
    except AccessCodeRequired:
        await websocket.send_json(
            Notification(kind=NotificationKind.ACCESS_CODE_REQUIRED, team_id=team_id).to_message()
        )
        await websocket.close()
        return

    # Subscribe before taking the snapshot so no delta falls in between
    subscriber = QueueSubscriber(asyncio.get_running_loop())
    registry.broadcaster.subscribe(team_id, subscriber)
    pump = None
    try:
        snapshot = await run_in_threadpool(registry.load_team_data, session, team)
        session.close()
        await websocket.send_json(
            Notification(
                kind=NotificationKind.TEAM_LOADED,
                team_id=team_id,
                payload=snapshot.model_dump(mode="json"),
            ).to_message()
        )

        pump = asyncio.create_task(_pump(websocket, subscriber))
        while True:
            # Client messages are ignored; receiving detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Session for team {team_id} disconnected")
    finally:
        if pump is not None:
            pump.cancel()
        registry.broadcaster.unsubscribe(team_id, subscriber)
