"""
Timeline service: composes "everything my followees have posted".

Design notes
------------
- The composition is a parallel map followed by a zip: one fetch per
  followee is launched with ``asyncio.gather`` and the results are paired
  with the followee list by index.  Entry order therefore follows the order
  the Follow Store returned, never the order in which fetches completed.
- Each fetch captures its own result as a ``FetchOutcome`` instead of
  raising, so one failing followee cannot abort the gather.  A failed,
  timed-out or malformed fetch degrades that entry to an empty message
  list.  Callers cannot tell a degraded entry from a followee who has
  posted nothing.
- Only two failures are fatal: the requester failing authentication
  (``Unauthorized``) and the follow lookup failing (``StoreUnavailable``).
- Every fetch is bounded by an explicit timeout; a timeout is handled like
  any other per-followee failure.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from app.clients import MessagesClient, UsersClient
from app.exceptions import RelationsError, Unauthorized
from app.schemas import Message, TimelineEntry, TimelineMessage
from app.services import follow_service

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Result of one followee's message fetch: data on success, else a reason."""

    ok: bool
    messages: list[Message] = field(default_factory=list)
    error: str | None = None


async def _fetch_messages(
    messages: MessagesClient,
    followee_username: str,
    credential: str,
    timeout: float,
) -> FetchOutcome:
    try:
        fetched = await asyncio.wait_for(
            messages.list_messages(followee_username, credential), timeout
        )
    except asyncio.TimeoutError:
        logger.warning("Message fetch for %s timed out after %.2fs", followee_username, timeout)
        return FetchOutcome(ok=False, error="timeout")
    except RelationsError as exc:
        logger.warning("Message fetch for %s failed: %s", followee_username, exc.message)
        return FetchOutcome(ok=False, error=type(exc).__name__)
    except Exception as exc:
        logger.exception("Unexpected error fetching messages for %s", followee_username)
        return FetchOutcome(ok=False, error=type(exc).__name__)
    return FetchOutcome(ok=True, messages=fetched)


def _to_entry(followee_username: str, outcome: FetchOutcome) -> TimelineEntry:
    if not outcome.ok:
        return TimelineEntry(siguiendo=followee_username, mensajes=[])
    return TimelineEntry(
        siguiendo=followee_username,
        mensajes=[
            TimelineMessage(id=m.id, contenido=m.contenido, fecha_creacion=m.fecha_creacion)
            for m in outcome.messages
        ],
    )


async def get_timeline(
    db: AsyncSession,
    users: UsersClient,
    messages: MessagesClient,
    requester_username: str,
    credential: str | None,
    *,
    fetch_timeout: float,
) -> list[TimelineEntry]:
    """
    Return one ``TimelineEntry`` per user that *requester_username* follows.

    Raises ``Unauthorized`` when the requester cannot be authenticated (no
    store or fan-out call is made in that case) and ``StoreUnavailable``
    when the followee list cannot be read.
    """
    if not credential:
        raise Unauthorized("Acceso denegado. Se requiere token de autenticación.")

    # 1. Authenticate
    try:
        await users.verify(requester_username, credential)
    except RelationsError as exc:
        logger.warning(
            "Timeline authentication failed for %s: %s", requester_username, exc.message
        )
        raise Unauthorized() from exc

    # 2. Resolve followee set
    edges = await follow_service.list_followees_of(db, requester_username)
    followees = [edge.followee_username for edge in edges]
    if not followees:
        logger.info("Timeline for %s: follows nobody", requester_username)
        return []

    # End the read transaction so no pooled connection is held during fan-out.
    await db.commit()

    # 3. Fan out
    outcomes = await asyncio.gather(
        *(
            _fetch_messages(messages, followee, credential, fetch_timeout)
            for followee in followees
        )
    )

    # 4. Merge in followee-resolution order
    timeline = [_to_entry(followee, outcome) for followee, outcome in zip(followees, outcomes)]

    failed = sum(1 for outcome in outcomes if not outcome.ok)
    logger.info(
        "Timeline for %s: %d followee(s), %d degraded to empty",
        requester_username, len(followees), failed,
    )
    return timeline
