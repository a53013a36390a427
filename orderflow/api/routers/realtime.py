import asyncio

import redis.asyncio as aioredis
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from orderflow.domain.errors import ValidationError
from orderflow.domain.topics import parse_topic
from orderflow.utils.settings import REDIS_URL
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


def parse_topics(raw: str) -> list[str]:
    topics = [str(parse_topic(part)) for part in raw.split(",") if part.strip()]
    if not topics:
        raise ValidationError("At least one topic is required")
    return sorted(set(topics))


async def _relay(pubsub, websocket: WebSocket) -> None:
    async for message in pubsub.listen():
        if message["type"] != "message":
            continue
        await websocket.send_text(message["data"])


async def _until_disconnect(websocket: WebSocket) -> None:
    # klient nic nie wysyla, czekamy tylko na zamkniecie socketu
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def order_events(websocket: WebSocket, topics: str = Query(...)):
    """
    Subskrypcja kanalow restaurant:/order:/customer: na czas zycia polaczenia.
    Po reconnect klient subskrybuje od nowa, nic nie jest zapamietywane.

    Relay z Redisa i nasluch na rozlaczenie ida rownolegle, wiec cichy kanal
    nie trzyma subskrypcji po zamknieciu socketu.
    """
    try:
        channels = parse_topics(topics)
    except ValidationError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()

    client = aioredis.from_url(REDIS_URL, decode_responses=True)
    pubsub = client.pubsub()
    tasks = []

    try:
        await pubsub.subscribe(*channels)
        logger.info(f"WebSocket subscribed to {channels}")

        tasks = [
            asyncio.create_task(_relay(pubsub, websocket)),
            asyncio.create_task(_until_disconnect(websocket)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error

        logger.info(f"WebSocket disconnected from {channels}")
    finally:
        for task in tasks:
            task.cancel()
        await pubsub.unsubscribe(*channels)
        await pubsub.aclose()
        await client.aclose()
