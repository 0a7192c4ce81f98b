"""
Unit tests for wide-event building and tail sampling.
"""

import pytest

from fsis.core.exceptions import ConfigurationError
from fsis.core.logging import (
    TailSampler,
    configure_logging,
    enrich_event,
    finalize_request_event,
    init_request_event,
    logical_status,
)


class TestWideEvent:
    def test_dotted_keys_nest(self):
        init_request_event(method="GET", path="/fsis")

        enrich_event(**{"fsis.group": "photos", "fsis.outcome": "success"})
        event = finalize_request_event(200)

        assert event["fsis"] == {"group": "photos", "outcome": "success"}
        assert event["http"]["method"] == "GET"
        assert event["http"]["status_code"] == 200
        assert event["outcome"] == "success"

    def test_fallback_failure_is_an_error_outcome(self):
        init_request_event(path="/fsis")
        enrich_event(fsis={"outcome": "failure", "status_code": 404, "fallback": True})

        event = finalize_request_event(200)

        assert event["http"]["status_code"] == 200
        assert event["outcome"] == "error"

    def test_error_details_are_recorded(self):
        init_request_event()
        error = ConfigurationError("Invalid settings", details={"field": "fsis_groups"})

        event = finalize_request_event(500, error)

        assert event["error"] == {
            "type": "ConfigurationError",
            "message": "Invalid settings",
            "details": {"field": "fsis_groups"},
        }

    def test_request_id_generated_when_missing(self):
        assert len(init_request_event()["request_id"]) == 8
        assert init_request_event(request_id="abc")["request_id"] == "abc"

    def test_service_metadata_from_configuration(self):
        configure_logging(json_logs=True, sample_rate=0.0, version="1.2.3", environment="staging")

        service = init_request_event()["service"]

        assert service == {"name": "fsis", "version": "1.2.3", "environment": "staging"}


class TestTailSampler:
    @pytest.mark.parametrize(
        ("event", "expected"),
        [
            ({"http": {"status_code": 200}}, 200),
            ({"http": {"status_code": 500}}, 500),
            ({"http": {"status_code": 200}, "fsis": {"status_code": 404}}, 404),
            ({}, 200),
        ],
    )
    def test_logical_status(self, event, expected):
        assert logical_status(event) == expected

    def test_drops_fast_success_at_zero_rate(self):
        sampler = TailSampler(rate=0.0)
        assert not sampler.keep({"http": {"status_code": 200}, "duration_ms": 5})

    def test_keeps_everything_at_full_rate(self):
        assert TailSampler(rate=1.0).keep({"http": {"status_code": 200}})

    @pytest.mark.parametrize(
        "event",
        [
            {"http": {"status_code": 403}},
            {"http": {"status_code": 500}},
            {"http": {"status_code": 200}, "fsis": {"status_code": 500, "fallback": True}},
            {"http": {"status_code": 200}, "duration_ms": 2500},
        ],
    )
    def test_always_keeps_failures_and_slow_requests(self, event):
        assert TailSampler(rate=0.0).keep(event)
