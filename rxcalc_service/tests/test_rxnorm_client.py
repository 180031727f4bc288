"""Unit tests for rxnorm_client - drug name / NDC to RxCUI with mocked HTTP."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import requests

from conftest import fake_response
from rxcalc.services import rxnorm_client
from rxcalc.services.rxnorm_client import (
    RxNormError,
    get_drug_properties,
    get_ndc_status,
    normalize_drug,
    search_drugs,
)

GET = "rxcalc.services.rxnorm_client.requests.get"


@pytest.mark.unit
class TestNormalizeDrugByName:
    def test_first_rxnorm_id_wins(self) -> None:
        with patch(GET, return_value=fake_response({"idGroup": {"rxnormId": ["29046", "1"]}})) as get:
            result = normalize_drug("  lisinopril ")

        assert result.succeeded is True
        assert result.rxcui == "29046"
        assert result.drug_name == "lisinopril"
        url = get.call_args.args[0]
        assert url.endswith("/rxcui.json")
        assert get.call_args.kwargs["params"] == {"name": "lisinopril"}
        assert get.call_args.kwargs["timeout"] == rxnorm_client.HTTP_TIMEOUT_S

    def test_unknown_drug(self) -> None:
        with patch(GET, return_value=fake_response({"idGroup": {"name": "notadrug"}})):
            result = normalize_drug("notadrug")

        assert result.succeeded is False
        assert result.error.code == "DRUG_NOT_FOUND"

    @pytest.mark.parametrize("value", ["", " ", "a", None])
    def test_too_short_input_skips_network(self, value) -> None:
        with patch(GET) as get:
            result = normalize_drug(value)

        assert result.succeeded is False
        assert result.error.code == "INVALID_INPUT"
        get.assert_not_called()

    def test_network_failure_is_a_result(self) -> None:
        with patch(GET, side_effect=requests.ConnectionError("refused")):
            result = normalize_drug("lisinopril")

        assert result.succeeded is False
        assert result.error.code == "NETWORK_ERROR"

    def test_http_error_is_a_result(self) -> None:
        with patch(GET, return_value=fake_response({}, status_code=503, reason="Service Unavailable")):
            result = normalize_drug("lisinopril")

        assert result.succeeded is False
        assert result.error.code == "HTTP_503"
        assert result.error.message == "Service Unavailable"

    def test_responses_are_cached(self) -> None:
        with patch(GET, return_value=fake_response({"idGroup": {"rxnormId": ["29046"]}})) as get:
            normalize_drug("lisinopril")
            normalize_drug("lisinopril")

        assert get.call_count == 1

    def test_failed_responses_are_not_cached(self) -> None:
        with patch(GET, return_value=fake_response({}, status_code=500, reason="Server Error")) as get:
            normalize_drug("lisinopril")
            normalize_drug("lisinopril")

        assert get.call_count == 2


@pytest.mark.unit
class TestNormalizeDrugByNdc:
    def test_altpkg_retry(self) -> None:
        responses = [
            fake_response({"ndcStatus": {"rxcui": "", "ndcStatus": "UNKNOWN"}}),
            fake_response({"ndcStatus": {"rxcui": "314076", "conceptName": "lisinopril 10 MG Oral Tablet"}}),
        ]
        with patch(GET, side_effect=responses) as get:
            result = normalize_drug("00071-0155-23")

        assert result.succeeded is True
        assert result.rxcui == "314076"
        assert result.drug_name == "lisinopril 10 MG Oral Tablet"
        first, second = get.call_args_list
        assert first.args[0].endswith("/ndcstatus.json")
        assert first.kwargs["params"] == {"ndc": "00071015523"}
        assert second.kwargs["params"] == {"ndc": "00071015523", "altpkg": "1"}

    def test_concept_name_falls_back_to_input(self) -> None:
        with patch(GET, return_value=fake_response({"ndcStatus": {"rxcui": "314076"}})):
            result = normalize_drug("00071015523")

        assert result.drug_name == "00071015523"

    def test_unknown_ndc(self) -> None:
        with patch(GET, return_value=fake_response({"ndcStatus": {}})):
            result = normalize_drug("00000-0000-00")

        assert result.succeeded is False
        assert result.error.code == "NDC_NOT_FOUND"


@pytest.mark.unit
class TestOtherLookups:
    @pytest.mark.parametrize("raw, status", [("ACTIVE", "active"), ("RETIRED", "inactive"), ("ALIEN", "unknown")])
    def test_ndc_status(self, raw: str, status: str) -> None:
        payload = {"ndcStatus": {"rxcui": "314076", "ndcStatus": raw}}
        with patch(GET, return_value=fake_response(payload)):
            result = get_ndc_status("00071-0155-23")

        assert result.status == status
        assert result.rxcui == "314076"
        assert result.ndc == "00071-0155-23"

    def test_ndc_status_rejects_bad_format(self) -> None:
        with pytest.raises(RxNormError) as exc:
            get_ndc_status("12-34")

        assert exc.value.error.code == "INVALID_INPUT"

    def test_ndc_status_propagates_transport_errors(self) -> None:
        with patch(GET, side_effect=requests.Timeout("slow")):
            with pytest.raises(RxNormError) as exc:
                get_ndc_status("00071015523")

        assert exc.value.error.code == "NETWORK_ERROR"

    def test_drug_properties_endpoint(self) -> None:
        with patch(GET, return_value=fake_response({"properties": {"rxcui": "29046"}})) as get:
            data = get_drug_properties("29046")

        assert data["properties"]["rxcui"] == "29046"
        assert get.call_args.args[0].endswith("/rxcui/29046/properties.json")

    def test_drug_properties_requires_rxcui(self) -> None:
        with pytest.raises(RxNormError):
            get_drug_properties("")

    def test_search_drugs_requires_two_characters(self) -> None:
        with pytest.raises(RxNormError):
            search_drugs("a")


@pytest.mark.unit
class TestNdcShapes:
    def test_ten_digit_layout_is_padded(self) -> None:
        with patch(GET, return_value=fake_response({"ndcStatus": {"rxcui": "314076"}})) as get:
            normalize_drug("1234-5678-90")

        assert get.call_args.kwargs["params"] == {"ndc": "01234567890"}

    def test_text_around_digits_is_a_name_search(self) -> None:
        with patch(GET, return_value=fake_response({"idGroup": {}})) as get:
            normalize_drug("lot 12345-6789-01")

        assert get.call_args.args[0].endswith("/rxcui.json")
