"""
Error kinds raised by the Relations service.

Every error carries the HTTP status it maps to and a human-readable message.
The exception handlers registered in ``app.main`` render them into the
``{"status": "error", "mensaje": ...}`` envelope, so the status code is the
only machine-readable signal of the error kind.
"""


class RelationsError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Error interno del servidor."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(RelationsError):
    status_code = 401
    default_message = "No te encuentras logueado en el sistema."


class NotFound(RelationsError):
    status_code = 404
    default_message = "Usuario no encontrado."


class InvalidInput(RelationsError):
    status_code = 400
    default_message = "Solicitud inválida."


class Conflict(RelationsError):
    status_code = 409
    default_message = "Conflicto con el estado actual del recurso."


class DuplicateEdge(Conflict):
    default_message = "Ya estás siguiendo a este usuario."


class UpstreamUnavailable(RelationsError):
    status_code = 503
    default_message = "El servicio dependiente no está disponible en este momento."


class InternalError(RelationsError):
    status_code = 500


class StoreUnavailable(InternalError):
    default_message = "Error interno del servidor al consultar los seguimientos."
