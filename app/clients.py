"""
HTTP clients for the services the Relations service depends on.

Both clients forward the caller's ``Authorization`` header unchanged: the
Users and Messages services perform their own authorization, this service
never decodes the credential itself.

Upstream failures are translated into the error kinds of
``app.exceptions``:

- 401 / 403  -> ``Unauthorized``
- 404        -> ``NotFound``
- anything else (other status, transport error, timeout, a username that
  cannot be put in a URL, malformed body)
             -> ``UpstreamUnavailable``
"""
import logging

import httpx
from pydantic import TypeAdapter, ValidationError

from app.config import Settings
from app.exceptions import NotFound, Unauthorized, UpstreamUnavailable
from app.schemas import Message, UserRecord

logger = logging.getLogger(__name__)

_MESSAGE_LIST = TypeAdapter(list[Message])


class _ServiceClient:
    """Shared plumbing: one pooled ``httpx.AsyncClient`` per upstream service."""

    service_name = "upstream"

    def __init__(self, base_url: str, http: httpx.AsyncClient) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http

    @classmethod
    def from_settings(cls, base_url: str, settings: Settings, **kwargs):
        http = httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            limits=httpx.Limits(max_connections=settings.HTTP_MAX_CONNECTIONS),
            **kwargs,
        )
        return cls(base_url, http)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_data(self, username: str, credential: str | None):
        """GET ``{base_url}/{username}`` and return the envelope's ``data``."""
        headers = {"Authorization": credential} if credential else {}
        url = f"{self._base_url}/{username}"
        try:
            response = await self._http.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("%s service unreachable (GET %s): %s", self.service_name, url, exc)
            raise UpstreamUnavailable(
                f"El servicio de {self.service_name} no está disponible en este momento."
            ) from exc

        if response.status_code in (401, 403):
            raise Unauthorized()
        if response.status_code == 404:
            raise NotFound()
        if response.is_error:
            logger.error(
                "%s service answered %d for GET %s",
                self.service_name, response.status_code, url,
            )
            raise UpstreamUnavailable(
                f"El servicio de {self.service_name} no está disponible en este momento."
            )

        try:
            body = response.json()
            return body["data"]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Malformed %s envelope for GET %s: %s", self.service_name, url, exc)
            raise UpstreamUnavailable(
                f"Respuesta inválida del servicio de {self.service_name}."
            ) from exc


class UsersClient(_ServiceClient):
    """Identity Verifier backed by ``GET /usuarios/{username}``."""

    service_name = "usuarios"

    async def verify(self, username: str, credential: str | None) -> UserRecord:
        """
        Confirm that *username* exists and *credential* is accepted by the
        Users service, returning the canonical user record.
        """
        data = await self._get_data(username, credential)
        try:
            return UserRecord.model_validate(data)
        except ValidationError as exc:
            raise UpstreamUnavailable("Respuesta inválida del servicio de usuarios.") from exc


class MessagesClient(_ServiceClient):
    """Message Reader backed by ``GET /mensajes/{username}``."""

    service_name = "mensajes"

    async def list_messages(self, username: str, credential: str | None) -> list[Message]:
        """Return *username*'s messages, newest first, as served upstream."""
        data = await self._get_data(username, credential)
        try:
            return _MESSAGE_LIST.validate_python(data)
        except ValidationError as exc:
            raise UpstreamUnavailable("Respuesta inválida del servicio de mensajes.") from exc
