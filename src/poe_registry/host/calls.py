"""Call payloads delivered by the host.

Each call names exactly one claim operation.  Proofs may arrive as raw
bytes or as hex text; length is *not* checked here, the claim service
does that.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from poe_registry.core.enums import CallKind
from poe_registry.core.ids import proof_from_hex


class BaseCall(BaseModel):
    """Common proof field for all calls."""

    model_config = {"frozen": True}

    proof: bytes

    @field_validator("proof", mode="before")
    @classmethod
    def _decode_proof(cls, v: object) -> object:
        if isinstance(v, str):
            try:
                return proof_from_hex(v)
            except ValueError as exc:
                raise ValueError(f"proof is not valid hex: {v!r}") from exc
        return v


class CreateClaim(BaseCall):
    call: Literal["create_claim"] = "create_claim"


class TransferClaim(BaseCall):
    call: Literal["transfer_claim"] = "transfer_claim"
    dest: str = Field(min_length=1)


class RevokeClaim(BaseCall):
    call: Literal["revoke_claim"] = "revoke_claim"


Call = Annotated[
    Union[CreateClaim, TransferClaim, RevokeClaim],
    Field(discriminator="call"),
]

#: Static dispatch weight per call kind.  Reported for host bookkeeping;
#: nothing in the registry charges for it.
CALL_WEIGHTS: dict[CallKind, int] = {
    CallKind.CREATE_CLAIM: 1_000,
    CallKind.TRANSFER_CLAIM: 1_000,
    CallKind.REVOKE_CLAIM: 10_000,
}

_CALL_ADAPTER: TypeAdapter[Call] = TypeAdapter(Call)


def parse_call(data: dict[str, Any]) -> CreateClaim | TransferClaim | RevokeClaim:
    """Validate a raw call payload, e.g. ``{"call": "revoke_claim", "proof": "0xab"}``."""
    return _CALL_ADAPTER.validate_python(data)


def call_weight(call: CreateClaim | TransferClaim | RevokeClaim) -> int:
    return CALL_WEIGHTS[CallKind(call.call)]
