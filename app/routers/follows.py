from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients import MessagesClient, UsersClient
from app.config import Settings
from app.database import get_db
from app.dependencies import get_credential, get_messages_client, get_settings, get_users_client
from app.schemas import (
    ErrorEnvelope,
    FollowCreate,
    FollowCreated,
    FollowCreatedEnvelope,
    FolloweeListEnvelope,
    FolloweeResponse,
    TimelineEnvelope,
)
from app.services import follow_service, timeline_service

router = APIRouter(prefix="/follows", tags=["follows"])

@router.get(
    "/siguiendo/{username}",
    response_model=TimelineEnvelope,
    responses={401: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}},
)
async def get_timeline(
    username: str,
    credential: str | None = Depends(get_credential),
    db: AsyncSession = Depends(get_db),
    users: UsersClient = Depends(get_users_client),
    messages: MessagesClient = Depends(get_messages_client),
    settings: Settings = Depends(get_settings),
):
    timeline = await timeline_service.get_timeline(
        db, users, messages, username, credential,
        fetch_timeout=settings.FANOUT_TIMEOUT_SECONDS,
    )
    return TimelineEnvelope(data=timeline)

@router.post(
    "/{username}",
    status_code=201,
    response_model=FollowCreatedEnvelope,
    responses={code: {"model": ErrorEnvelope} for code in (400, 401, 404, 409, 503)},
)
async def create_follow(
    username: str,
    data: FollowCreate,
    credential: str | None = Depends(get_credential),
    db: AsyncSession = Depends(get_db),
    users: UsersClient = Depends(get_users_client),
):
    follow = await follow_service.follow_user(
        db, users, username, data.usuarioSeguidorUsername, credential
    )
    return FollowCreatedEnvelope(
        data=FollowCreated(seguidor=follow.follower_username, seguido=follow.followee_username)
    )

@router.get(
    "/{username}",
    response_model=FolloweeListEnvelope,
    responses={code: {"model": ErrorEnvelope} for code in (401, 404, 500)},
)
async def list_followees(
    username: str,
    credential: str | None = Depends(get_credential),
    db: AsyncSession = Depends(get_db),
    users: UsersClient = Depends(get_users_client),
):
    edges = await follow_service.get_followees(db, users, username, credential)
    return FolloweeListEnvelope(
        data=[
            FolloweeResponse(
                usuario_principal_username=edge.followee_username,
                fecha_creacion=edge.created_at,
            )
            for edge in edges
        ]
    )
