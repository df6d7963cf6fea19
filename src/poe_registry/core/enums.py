"""Enumerations used across the proof registry."""

from enum import Enum


class CallKind(str, Enum):
    CREATE_CLAIM = "create_claim"
    TRANSFER_CLAIM = "transfer_claim"
    REVOKE_CLAIM = "revoke_claim"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
