"""Tests for the approval job payload codec."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from emporium.db.models import EntityType, Operation
from emporium.errors import BadRequestError, MalformedPayload, UnsupportedPayloadKind
from emporium.schemas.catalog import (
    CreateCategoryRequest,
    CreateInventoryInlineRequest,
    CreateProductRequest,
    UpdateCategoryRequest,
    UpdateInventoryInlineRequest,
    UpdateProductRequest,
)
from emporium.services.approval_codec import GOVERNED_PAYLOAD_SHAPES, PayloadCodec, default_codec

CAT, PROD = EntityType.CATEGORY, EntityType.PRODUCT
CREATE, UPDATE, DELETE = Operation.CREATE, Operation.UPDATE, Operation.DELETE


REPRESENTATIVE = {
    (CAT, CREATE): CreateCategoryRequest(name="Electronics"),
    (CAT, UPDATE): UpdateCategoryRequest(name="Home & Garden"),
    (PROD, CREATE): CreateProductRequest(
        title="Noise Cancelling Headphones",
        price=Decimal("199.99"),
        description="Over-ear, 30h battery",
        image_url="https://img.example.com/h.png",
        rating_rate=4.5,
        count=12,
        category="Electronics",
        inventory=CreateInventoryInlineRequest(total=10, available=7),
    ),
    (PROD, UPDATE): UpdateProductRequest(
        price=Decimal("149.50"),
        inventory=UpdateInventoryInlineRequest(available=3),
    ),
}


class TestRoundTrip:
    @pytest.mark.parametrize("kind", list(REPRESENTATIVE), ids=lambda k: f"{k[0].value}-{k[1].value}")
    def test_decode_of_encode_is_identity(self, kind):
        entity_type, operation = kind
        payload = REPRESENTATIVE[kind]
        text = default_codec.encode(entity_type, operation, payload)
        assert default_codec.decode(entity_type, operation, text) == payload

    def test_every_payload_pair_has_a_representative(self):
        with_payload = {k for k, shape in GOVERNED_PAYLOAD_SHAPES.items() if shape is not None}
        assert with_payload == set(REPRESENTATIVE)

    def test_envelope_is_tagged(self):
        text = default_codec.encode(CAT, CREATE, CreateCategoryRequest(name="Electronics"))
        assert json.loads(text) == {
            "type": "CATEGORY",
            "operation": "CREATE",
            "data": {"name": "Electronics"},
        }

    def test_dict_payload_is_validated_into_shape(self):
        text = default_codec.encode(CAT, CREATE, {"name": "Electronics"})
        assert default_codec.decode(CAT, CREATE, text) == CreateCategoryRequest(name="Electronics")


class TestEncodeFailures:
    def test_product_payload_under_category_is_unsupported(self):
        with pytest.raises(UnsupportedPayloadKind):
            default_codec.encode(CAT, CREATE, REPRESENTATIVE[(PROD, CREATE)])

    def test_update_shape_under_create_is_unsupported(self):
        with pytest.raises(UnsupportedPayloadKind):
            default_codec.encode(CAT, CREATE, UpdateCategoryRequest(name="Electronics"))

    def test_delete_takes_no_payload(self):
        with pytest.raises(UnsupportedPayloadKind):
            default_codec.encode(PROD, DELETE, {"id": 3})

    def test_product_fields_do_not_validate_as_category(self):
        with pytest.raises(MalformedPayload):
            default_codec.encode(CAT, CREATE, {"name": "Electronics", "price": "1.00"})

    def test_scalar_payload_is_unsupported(self):
        with pytest.raises(UnsupportedPayloadKind):
            default_codec.encode(CAT, CREATE, "Electronics")

    def test_oversized_envelope_is_rejected(self):
        codec = PayloadCodec(GOVERNED_PAYLOAD_SHAPES, max_length=40)
        with pytest.raises(MalformedPayload, match="maximum length"):
            codec.encode(CAT, CREATE, CreateCategoryRequest(name="A very long category name indeed"))

    def test_codec_errors_are_bad_requests(self):
        assert issubclass(UnsupportedPayloadKind, BadRequestError)
        assert issubclass(MalformedPayload, BadRequestError)


class TestDecodeFailures:
    def test_empty_text(self):
        with pytest.raises(MalformedPayload):
            default_codec.decode(CAT, CREATE, "")

    def test_not_json(self):
        with pytest.raises(MalformedPayload):
            default_codec.decode(CAT, CREATE, "{name: Electronics")

    def test_missing_data_section(self):
        with pytest.raises(MalformedPayload):
            default_codec.decode(CAT, CREATE, '{"type": "CATEGORY", "operation": "CREATE"}')

    def test_tag_mismatch(self):
        text = default_codec.encode(CAT, UPDATE, UpdateCategoryRequest(name="Electronics"))
        with pytest.raises(MalformedPayload, match="tagged"):
            default_codec.decode(CAT, CREATE, text)

    def test_data_that_no_longer_fits_shape(self):
        text = json.dumps({"type": "CATEGORY", "operation": "CREATE", "data": {"name": "x"}})
        with pytest.raises(MalformedPayload):
            default_codec.decode(CAT, CREATE, text)

    def test_unregistered_pair(self):
        codec = PayloadCodec({(CAT, CREATE): CreateCategoryRequest})
        with pytest.raises(UnsupportedPayloadKind):
            codec.decode(PROD, CREATE, "{}")
