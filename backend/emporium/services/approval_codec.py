"""Payload codec for approval jobs.

A job stores its payload as one JSON text column regardless of what is being
governed.  The codec owns the binding (entity type, operation) → request shape
and converts between a typed payload and the stored envelope::

    {"type": "CATEGORY", "operation": "CREATE", "data": {"name": "Electronics"}}

Decoding checks the envelope tag against the job's own pair and re-validates
``data`` against the current shape, so a payload that no longer fits (schema
drift between submission and decision) is caught before anything is dispatched.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from emporium.config import settings
from emporium.db.models import EntityType, Operation
from emporium.errors import MalformedPayload, UnsupportedPayloadKind
from emporium.schemas.catalog import (
    CreateCategoryRequest,
    CreateProductRequest,
    UpdateCategoryRequest,
    UpdateProductRequest,
)

PayloadKind = tuple[EntityType, Operation]


def _kind_label(kind: PayloadKind) -> str:
    return f"{kind[0].value}/{kind[1].value}"


class PayloadCodec:
    """Registry-backed encoder/decoder.

    *shapes* maps every governed pair to its request model, or to ``None``
    when the operation carries no payload (deletes).
    """

    def __init__(
        self,
        shapes: Mapping[PayloadKind, type[BaseModel] | None],
        max_length: int = settings.APPROVAL_PAYLOAD_MAX_LENGTH,
    ) -> None:
        self._shapes = dict(shapes)
        self._max_length = max_length

    @property
    def kinds(self) -> frozenset[PayloadKind]:
        return frozenset(self._shapes)

    def is_registered(self, entity_type: EntityType, operation: Operation) -> bool:
        return (entity_type, operation) in self._shapes

    def shape_for(self, entity_type: EntityType, operation: Operation) -> type[BaseModel] | None:
        kind = (entity_type, operation)
        if kind not in self._shapes:
            raise UnsupportedPayloadKind(f"{_kind_label(kind)} is not a governed operation.")
        return self._shapes[kind]

    def takes_payload(self, entity_type: EntityType, operation: Operation) -> bool:
        return self.shape_for(entity_type, operation) is not None

    def coerce(self, entity_type: EntityType, operation: Operation, payload: Any) -> BaseModel:
        """Return *payload* as an instance of the registered shape.

        Model instances must already be of that exact shape; dicts (JSON
        bodies) are validated into it.
        """
        kind = (entity_type, operation)
        shape = self.shape_for(entity_type, operation)
        if shape is None:
            raise UnsupportedPayloadKind(f"{_kind_label(kind)} does not take a payload.")
        if isinstance(payload, BaseModel):
            if type(payload) is not shape:
                raise UnsupportedPayloadKind(
                    f"{type(payload).__name__} is not a valid payload for {_kind_label(kind)}; "
                    f"expected {shape.__name__}."
                )
            return payload
        if isinstance(payload, Mapping):
            try:
                return shape.model_validate(dict(payload))
            except ValidationError as exc:
                raise MalformedPayload(
                    f"The field Payload is invalid for {_kind_label(kind)}: "
                    f"{exc.error_count()} validation error(s)."
                ) from exc
        raise UnsupportedPayloadKind(
            f"{type(payload).__name__} is not a valid payload for {_kind_label(kind)}."
        )

    def encode(self, entity_type: EntityType, operation: Operation, payload: Any) -> str:
        model = self.coerce(entity_type, operation, payload)
        text = json.dumps(
            {
                "type": entity_type.value,
                "operation": operation.value,
                "data": model.model_dump(mode="json"),
            },
            separators=(",", ":"),
        )
        if len(text) > self._max_length:
            raise MalformedPayload(
                f"The field Payload must be a maximum length of {self._max_length} characters."
            )
        return text

    def decode(self, entity_type: EntityType, operation: Operation, text: str | None) -> BaseModel:
        kind = (entity_type, operation)
        shape = self.shape_for(entity_type, operation)
        if shape is None:
            raise UnsupportedPayloadKind(f"{_kind_label(kind)} does not take a payload.")
        if not text or not text.strip():
            raise MalformedPayload(f"The field Payload is required for {_kind_label(kind)}.")
        try:
            envelope = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedPayload(f"Stored payload for {_kind_label(kind)} is not valid JSON.") from exc

        if not isinstance(envelope, dict) or "data" not in envelope:
            raise MalformedPayload(f"Stored payload for {_kind_label(kind)} has no data section.")
        tag = (envelope.get("type"), envelope.get("operation"))
        if tag != (entity_type.value, operation.value):
            raise MalformedPayload(
                f"Stored payload is tagged {tag[0]}/{tag[1]} but the job is {_kind_label(kind)}."
            )
        try:
            return shape.model_validate(envelope["data"])
        except ValidationError as exc:
            raise MalformedPayload(
                f"The field Payload is invalid for {_kind_label(kind)}: "
                f"{exc.error_count()} validation error(s)."
            ) from exc


GOVERNED_PAYLOAD_SHAPES: dict[PayloadKind, type[BaseModel] | None] = {
    (EntityType.CATEGORY, Operation.CREATE): CreateCategoryRequest,
    (EntityType.CATEGORY, Operation.UPDATE): UpdateCategoryRequest,
    (EntityType.CATEGORY, Operation.DELETE): None,
    (EntityType.PRODUCT, Operation.CREATE): CreateProductRequest,
    (EntityType.PRODUCT, Operation.UPDATE): UpdateProductRequest,
    (EntityType.PRODUCT, Operation.DELETE): None,
}

default_codec = PayloadCodec(GOVERNED_PAYLOAD_SHAPES)
