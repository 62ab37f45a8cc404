from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# --- Users service (consumed) ---

class Role(str, Enum):
    ADMIN = "Administrador"
    REGULAR_USER = "Usuario red social"


class UserRecord(BaseModel):
    username: str
    nombre: str | None = None
    rol: Role = Role.REGULAR_USER
    fecha_creacion: datetime | None = None
    model_config = ConfigDict(extra="ignore")


# --- Messages service (consumed) ---

class Message(BaseModel):
    id: int
    username_autor: str
    contenido: str
    fecha_creacion: datetime
    model_config = ConfigDict(extra="ignore")


# --- Follow ---

class FollowCreate(BaseModel):
    # Username of the user to follow (the followee).
    usuarioSeguidorUsername: str = Field(min_length=1, max_length=100)


class FollowCreated(BaseModel):
    seguidor: str
    seguido: str


class FolloweeResponse(BaseModel):
    usuario_principal_username: str
    fecha_creacion: datetime


# --- Timeline ---

class TimelineMessage(BaseModel):
    id: int
    contenido: str
    fecha_creacion: datetime


class TimelineEntry(BaseModel):
    siguiendo: str
    mensajes: list[TimelineMessage] = []


# --- Envelopes ---

class FollowCreatedEnvelope(BaseModel):
    status: Literal["success"] = "success"
    mensaje: str = "Usuario seguido exitosamente."
    data: FollowCreated


class FolloweeListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: list[FolloweeResponse]


class TimelineEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: list[TimelineEntry]


class ErrorEnvelope(BaseModel):
    status: Literal["error"] = "error"
    mensaje: str
