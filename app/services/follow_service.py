"""
Follow service: the Follow Store for directed follow edges.

Edges are create-only: there is no update or delete path.  Uniqueness of
the (followee, follower) pair is enforced by the database constraint in a
single INSERT, so two concurrent requests cannot both succeed.  Existence of
either username is NOT checked here; callers verify the followee against the
Users service before calling ``create_follow``.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients import UsersClient
from app.exceptions import (
    DuplicateEdge,
    InvalidInput,
    NotFound,
    RelationsError,
    StoreUnavailable,
    Unauthorized,
)
from app.models import Follow

logger = logging.getLogger(__name__)


async def create_follow(
    db: AsyncSession,
    followee_username: str,
    follower_username: str,
) -> Follow:
    """
    Insert the edge "*follower_username* follows *followee_username*".

    Raises ``InvalidInput`` for a self-edge, ``DuplicateEdge`` when the pair
    already exists and ``StoreUnavailable`` on any other persistence
    failure.  The insert is flushed but not committed; ``get_db`` owns the
    transaction boundary.
    """
    # Rejected before the INSERT so the only IntegrityError left is the
    # unique pair constraint.
    if followee_username == follower_username:
        raise InvalidInput("Un usuario no puede seguirse a sí mismo.")

    follow = Follow(
        followee_username=followee_username,
        follower_username=follower_username,
    )
    db.add(follow)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateEdge() from exc
    except SQLAlchemyError as exc:
        logger.error("Follow store insert failed: %s", exc)
        raise StoreUnavailable() from exc
    return follow


async def list_followees_of(db: AsyncSession, follower_username: str) -> list[Follow]:
    """
    Return every edge whose follower is *follower_username*, in insertion
    order.  An empty list means the user follows nobody.
    """
    q = (
        select(Follow)
        .where(Follow.follower_username == follower_username)
        .order_by(Follow.id)
    )
    try:
        result = await db.execute(q)
    except SQLAlchemyError as exc:
        logger.error("Follow store lookup failed for %s: %s", follower_username, exc)
        raise StoreUnavailable() from exc
    return list(result.scalars().all())


async def count_edges(db: AsyncSession, followee_username: str, follower_username: str) -> int:
    q = (
        select(func.count())
        .select_from(Follow)
        .where(
            Follow.followee_username == followee_username,
            Follow.follower_username == follower_username,
        )
    )
    return (await db.execute(q)).scalar_one()


# ---------------------------------------------------------------------------
# Request workflows (Users service verification + store)
# ---------------------------------------------------------------------------

async def follow_user(
    db: AsyncSession,
    users: UsersClient,
    follower_username: str,
    followee_username: str,
    credential: str | None,
) -> Follow:
    """
    Make *follower_username* follow *followee_username*.

    The followee must exist in the Users service.  Verification failures
    propagate as raised by ``UsersClient`` (401 / 404 / 503); the insert may
    raise ``DuplicateEdge``.
    """
    if follower_username == followee_username:
        logger.warning("User %s tried to follow themselves", follower_username)
        raise InvalidInput("Un usuario no puede seguirse a sí mismo.")

    logger.info("Verifying that %s exists in the Users service", followee_username)
    try:
        await users.verify(followee_username, credential)
    except NotFound:
        logger.warning("Followee %s does not exist", followee_username)
        raise NotFound("El usuario al que intentas seguir no existe.")

    try:
        follow = await create_follow(db, followee_username, follower_username)
    except DuplicateEdge:
        logger.warning("%s already follows %s", follower_username, followee_username)
        raise
    logger.info("%s now follows %s", follower_username, followee_username)
    return follow


async def get_followees(
    db: AsyncSession,
    users: UsersClient,
    username: str,
    credential: str | None,
) -> list[Follow]:
    """
    Return the raw follow edges of *username* after verifying the user.

    An unknown user is a 404; any other verification failure is reported as
    401, since the caller's credential could not be validated.
    """
    try:
        await users.verify(username, credential)
    except NotFound:
        raise NotFound("El usuario no existe o no está verificado.")
    except RelationsError as exc:
        logger.warning("Credential rejected while listing followees of %s: %s", username, exc.message)
        raise Unauthorized() from exc

    edges = await list_followees_of(db, username)
    logger.info("Returning %d followee(s) of %s", len(edges), username)
    return edges
