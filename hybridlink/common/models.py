"""
Pydantic models for directory entries and handshake results.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class HandshakeState(str, Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    SECRET_SENT = "secret_sent"
    SECRET_RECEIVED = "secret_received"
    MESSAGE_EXCHANGED = "message_exchanged"
    CLOSED = "closed"


class DirectoryEntry(BaseModel):
    identity: str = Field(min_length=1)
    public_key_hex: str


class AttributeValue(BaseModel):
    value: str


class AttributeResponse(BaseModel):
    identity: str
    attribute: str
    value: str


class HandshakeResult(BaseModel):
    identity: str
    peer: str
    state: HandshakeState
    message: str | None = None
