"""
Tests for Pydantic schemas — per-type metadata, request validation.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from vendorhub.schemas.activity import (
    IMPLICIT_TYPES,
    METADATA_MODELS,
    ActivityType,
    ContractExpiringMetadata,
    DocumentMetadata,
    EmptyMetadata,
    StatusChangeMetadata,
    SubjectRefs,
    VendorRatedMetadata,
    parse_metadata,
)
from vendorhub.schemas.api import ApiError, ApiResponse
from vendorhub.schemas.contract import ContractCreateRequest, ContractUpdateRequest, DocumentCreateRequest
from vendorhub.schemas.vendor import VendorCreateRequest, VendorRatingRequest, VendorUpdateRequest


class TestMetadataShapes:
    def test_every_type_has_a_shape(self):
        assert set(METADATA_MODELS) == set(ActivityType)

    def test_status_change(self):
        meta = parse_metadata(
            ActivityType.VENDOR_UPDATED,
            {"previous_status": "pending", "new_status": "active", "changed_fields": ["status"]},
        )
        assert isinstance(meta, StatusChangeMetadata)
        assert meta.new_status == "active"

    def test_rating_bounds(self):
        assert isinstance(parse_metadata(ActivityType.VENDOR_RATED, {"rating": 4.5}), VendorRatedMetadata)
        with pytest.raises(ValidationError):
            parse_metadata(ActivityType.VENDOR_RATED, {"rating": 6})
        with pytest.raises(ValidationError):
            parse_metadata(ActivityType.VENDOR_RATED, {})

    def test_document_requires_owner(self):
        meta = parse_metadata(
            ActivityType.DOCUMENT_UPLOADED,
            {"entity_type": "vendor", "entity_id": "v-1", "file_size": 10},
        )
        assert isinstance(meta, DocumentMetadata)
        with pytest.raises(ValidationError):
            parse_metadata(ActivityType.DOCUMENT_UPLOADED, {"file_size": 10})

    def test_expiry_days_non_negative(self):
        assert parse_metadata(ActivityType.CONTRACT_EXPIRING, {"days_to_expiry": 0}) == ContractExpiringMetadata(
            days_to_expiry=0
        )
        with pytest.raises(ValidationError):
            parse_metadata(ActivityType.CONTRACT_EXPIRING, {"days_to_expiry": -1})

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            parse_metadata(ActivityType.VENDOR_CREATED, {"anything": "goes"})

    def test_none_is_empty(self):
        assert parse_metadata(ActivityType.VENDOR_CREATED, None) == EmptyMetadata()

    def test_implicit_types(self):
        assert IMPLICIT_TYPES == {ActivityType.CONTRACT_SIGNED, ActivityType.DOCUMENT_SUBMITTED}


class TestSubjectRefs:
    def test_empty(self):
        assert SubjectRefs().is_empty()
        assert SubjectRefs(vendor_id="").is_empty()
        assert not SubjectRefs(contract_id="c-1").is_empty()


class TestApiResponse:
    def test_ok(self):
        assert ApiResponse(data=[1], error=None).ok
        resp = ApiResponse(data=None, error=ApiError(message="boom", code="fetch_error", status=502))
        assert not resp.ok


class TestEntityRequests:
    def test_vendor_email_validated(self):
        with pytest.raises(ValidationError):
            VendorCreateRequest(name="Acme", email="not-an-email")

    def test_vendor_score_bounds(self):
        with pytest.raises(ValidationError):
            VendorCreateRequest(name="Acme", score=5.5)
        with pytest.raises(ValidationError):
            VendorRatingRequest(rating=-1)

    def test_contract_dates_in_order(self):
        with pytest.raises(ValidationError) as exc_info:
            ContractCreateRequest(
                vendor_id="v-1", title="Backwards",
                start_date=date(2026, 6, 1), end_date=date(2026, 1, 1),
            )
        assert "end_date" in str(exc_info.value)

    def test_contract_value_integer(self):
        req = ContractCreateRequest(
            vendor_id="v-1", title="Hosting",
            start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), value=250000,
        )
        assert req.value == 250000
        with pytest.raises(ValidationError):
            ContractCreateRequest(
                vendor_id="v-1", title="Hosting",
                start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), value=-5,
            )

    def test_document_entity_type(self):
        with pytest.raises(ValidationError):
            DocumentCreateRequest(name="a.pdf", entity_type="profile", entity_id="x", file_path="a.pdf")

    def test_update_rejects_null_required_fields(self):
        with pytest.raises(ValidationError):
            ContractUpdateRequest(end_date=None)
        with pytest.raises(ValidationError):
            VendorUpdateRequest(name=None)
        assert ContractUpdateRequest(description=None).model_dump(exclude_unset=True) == {"description": None}
        assert ContractUpdateRequest().model_dump(exclude_unset=True) == {}
