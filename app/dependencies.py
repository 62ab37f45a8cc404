from fastapi import Header, Request

from app.clients import MessagesClient, UsersClient
from app.config import Settings


def get_settings(request: Request) -> Settings:
    """Return the ``Settings`` instance the application was created with."""
    return request.app.state.settings


def get_users_client(request: Request) -> UsersClient:
    return request.app.state.users_client


def get_messages_client(request: Request) -> MessagesClient:
    return request.app.state.messages_client


def get_credential(authorization: str | None = Header(None)) -> str | None:
    """
    The caller's raw ``Authorization`` header (e.g. ``"Bearer <jwt>"``).

    It is forwarded unchanged to the Users and Messages services, which are
    responsible for validating it.
    """
    return authorization
