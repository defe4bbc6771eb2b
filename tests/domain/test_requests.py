"""Tests for request validation, payload conversion and id parsing."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from shelter_kernel.domain.lifecycle import AdoptionStatus, ApplicationStatus, PaymentStatus
from shelter_kernel.domain.requests import (
    CurrentPet,
    ListAdoptionsRequest,
    ListApplicationsRequest,
    UpdateAdoptionRequest,
    UpdateApplicationRequest,
    as_payload,
)
from shelter_kernel.exceptions import InvalidIdentifierError
from shelter_kernel.utils.identifiers import parse_id, parse_optional_id
from tests.factories import make_adoption_request, make_application_request


class TestAsPayload:
    def test_nested_dataclasses_become_json_primitives(self):
        pet = CurrentPet(species="cat", name="Tom", age=3, vaccinated=True)
        payload = as_payload((pet,))

        assert payload == [{
            "species": "cat",
            "name": "Tom",
            "age": 3,
            "breed": None,
            "spayed": False,
            "vaccinated": True,
            "vet_name": None,
            "vet_phone": None,
        }]

    def test_scalars(self):
        uid = uuid4()
        assert as_payload(Decimal("12.50")) == "12.50"
        assert as_payload(date(2024, 5, 1)) == "2024-05-01"
        assert as_payload(uid) == str(uid)
        assert as_payload(ApplicationStatus.APPROVED) == "approved"
        assert as_payload(None) is None


class TestRequestValidation:
    def test_household_size_at_least_one(self):
        with pytest.raises(ValueError):
            make_application_request(uuid4(), household_size=0)

    def test_alone_time_not_negative(self):
        with pytest.raises(ValueError):
            make_application_request(uuid4(), alone_time=-1)

    def test_update_application_coerces_status(self):
        request = UpdateApplicationRequest(status="under_review")
        assert request.status is ApplicationStatus.UNDER_REVIEW

    def test_update_application_unknown_status(self):
        with pytest.raises(ValueError):
            UpdateApplicationRequest(status="lost")

    def test_negative_fee_rejected(self):
        with pytest.raises(ValueError):
            make_adoption_request(uuid4(), adoption_fee=Decimal("-1"))

    def test_adoption_request_coerces(self):
        request = make_adoption_request(
            uuid4(), payment_status="paid", follow_up_intervals=[7, 14],
        )
        assert request.payment_status is PaymentStatus.PAID
        assert request.follow_up_intervals == (7, 14)

    def test_omitted_intervals_stay_distinct_from_empty(self):
        assert make_adoption_request(uuid4()).follow_up_intervals is None
        assert make_adoption_request(uuid4(), follow_up_intervals=[]).follow_up_intervals == ()

    def test_update_adoption_coerces(self):
        request = UpdateAdoptionRequest(status="returned", payment_status="refunded")
        assert request.status is AdoptionStatus.RETURNED
        assert request.payment_status is PaymentStatus.REFUNDED

    @pytest.mark.parametrize(
        "kwargs",
        [{"limit": -1}, {"offset": -5}, {"sort_order": "sideways"}],
    )
    def test_paging_validation(self, kwargs):
        with pytest.raises(ValueError):
            ListApplicationsRequest(**kwargs)
        with pytest.raises(ValueError):
            ListAdoptionsRequest(**kwargs)


class TestIdentifiers:
    def test_parse_string(self):
        uid = uuid4()
        assert parse_id(str(uid)) == uid

    def test_uuid_passthrough(self):
        uid = uuid4()
        assert parse_id(uid) is uid

    @pytest.mark.parametrize("value", ["", "not-a-uuid", "1234"])
    def test_invalid(self, value):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            parse_id(value, "animal_id")
        assert exc_info.value.field_name == "animal_id"
        assert exc_info.value.code == "INVALID_IDENTIFIER"

    def test_optional(self):
        assert parse_optional_id(None) is None
        assert parse_optional_id("") is None
        with pytest.raises(InvalidIdentifierError):
            parse_optional_id("nope")
