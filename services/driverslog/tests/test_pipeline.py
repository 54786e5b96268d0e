import asyncio

import httpx
import pytest

from conftest import fake_backend
from errors import PipelineError, PipelineErrorKind
from pipeline import decode_batch, sort_events


def _raw(record_id, car_ts, lat=1.0, lon=2.0, ts=1000):
    return {
        "_id": {"$oid": record_id},
        "latitude": {"$numberDouble": str(lat)},
        "longitude": {"$numberDouble": str(lon)},
        "status": "parked",
        "timestamp": {"$date": {"$numberLong": str(ts)}},
        "carCapturedTimestamp": {"$date": {"$numberLong": str(car_ts)}},
    }


def test_single_record_is_decoded_and_enriched(make_pipeline) -> None:
    records = [
        {
            "id": "a",
            "lat": {"$numberDouble": "1.0"},
            "lon": {"$numberDouble": "2.0"},
            "ts": {"$date": {"$numberLong": "1000"}},
            "carTs": {"$date": {"$numberLong": "2000"}},
            "status": "parked",
        }
    ]
    pipeline = make_pipeline(fake_backend(records, address_for=lambda lat, lon: "123 Main St"))

    events = asyncio.run(pipeline.run())

    assert [e.model_dump(by_alias=True) for e in events] == [
        {
            "id": "a",
            "latitude": 1.0,
            "longitude": 2.0,
            "status": "parked",
            "timestamp": 1000,
            "carCapturedTimestamp": 2000,
            "address": "123 Main St",
            "addressError": False,
        }
    ]


def test_events_are_ordered_by_car_captured_timestamp(make_pipeline) -> None:
    records = [_raw("late", 5000), _raw("early", 3000)]

    events = asyncio.run(make_pipeline(fake_backend(records)).run())

    assert [e.car_captured_timestamp for e in events] == [3000, 5000]
    assert [e.id for e in events] == ["early", "late"]


def test_sort_is_stable_for_equal_keys() -> None:
    events, _ = decode_batch(
        [_raw("a", 5000), _raw("b", 3000), _raw("c", 5000), _raw("d", 3000), _raw("e", 4000)]
    )

    ordered = sort_events(events)

    assert [e.id for e in ordered] == ["b", "d", "e", "a", "c"]
    assert [e.id for e in events] == ["a", "b", "c", "d", "e"]


def test_failed_lookup_marks_only_that_event(make_pipeline) -> None:
    records = [_raw("a", 1000, lat=10.0), _raw("b", 2000, lat=20.0), _raw("c", 3000, lat=30.0)]

    def address_for(lat, lon):
        return None if lat == 20.0 else f"street at {lat:g}"

    events = asyncio.run(make_pipeline(fake_backend(records, address_for=address_for)).run())

    assert len(events) == 3
    by_id = {e.id: e for e in events}
    assert by_id["b"].address_error is True
    assert by_id["b"].address is None
    assert by_id["a"].address == "street at 10"
    assert by_id["a"].address_error is False
    assert by_id["c"].address == "street at 30"
    assert by_id["c"].address_error is False


def test_every_event_gets_its_own_lookup(make_pipeline) -> None:
    records = [_raw("a", 1000), _raw("b", 2000), _raw("c", 3000)]
    transport = fake_backend(records)

    asyncio.run(make_pipeline(transport).run())

    lookups = [r for r in transport.calls if r.url.path == "/reverse"]
    assert len(lookups) == 3


def test_undecodable_record_is_reported_not_fatal(make_pipeline) -> None:
    broken = _raw("bad", 1500)
    broken["latitude"] = {"$numberDouble": "NaN"}
    records = [_raw("a", 1000), broken, "not an object", _raw("b", 2000)]

    report = asyncio.run(make_pipeline(fake_backend(records)).run_report())

    assert [e.id for e in report.events] == ["a", "b"]
    assert report.count == 2
    assert [(r.index, r.id) for r in report.rejected] == [(1, "bad"), (2, None)]
    assert "latitude" in report.rejected[0].reason


@pytest.mark.parametrize(
    "logs_response",
    [
        httpx.Response(500, json={"error": "Failed to fetch logs"}),
        httpx.Response(404),
        httpx.Response(200, text="{not json"),
        httpx.Response(200, json={"error": "not a list"}),
    ],
)
def test_fetch_failure_yields_pipeline_error(make_pipeline, logs_response) -> None:
    transport = fake_backend([], logs_response=logs_response)

    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(make_pipeline(transport).run())

    assert exc_info.value.kind is PipelineErrorKind.FETCH_FAILED
    assert not [r for r in transport.calls if r.url.path == "/reverse"]


def test_unreachable_store_yields_pipeline_error(make_pipeline) -> None:
    request = httpx.Request("GET", "http://store.test/api/logs")
    transport = fake_backend([], logs_response=httpx.ConnectError("refused", request=request))

    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(make_pipeline(transport).run())

    assert exc_info.value.kind is PipelineErrorKind.FETCH_FAILED


def test_empty_store_is_an_empty_success(make_pipeline) -> None:
    report = asyncio.run(make_pipeline(fake_backend([])).run_report())

    assert report.events == []
    assert report.rejected == []
    assert report.count == 0


def test_malformed_timestamps_do_not_abort_the_batch(make_pipeline) -> None:
    dashes = _raw("dashes", 1000)
    dashes["timestamp"] = "--5"
    year_one = _raw("year-one", 1000)
    year_one["carCapturedTimestamp"] = "0001-01-01T00:00:00"
    superscript = _raw("superscript", 1000)
    superscript["timestamp"] = "²"
    records = [dashes, _raw("good", 2000), year_one, superscript]

    report = asyncio.run(make_pipeline(fake_backend(records)).run_report())

    assert report.count == 1
    assert [e.id for e in report.events] == ["good"]
    assert [(r.index, r.id) for r in report.rejected] == [
        (0, "dashes"),
        (2, "year-one"),
        (3, "superscript"),
    ]


def test_unexpected_geocoder_error_marks_only_that_event(make_pipeline) -> None:
    records = [_raw("a", 1000, lat=10.0), _raw("b", 2000, lat=20.0)]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/logs":
            return httpx.Response(200, json=records)
        if float(request.url.params["lat"]) == 20.0:
            raise httpx.InvalidURL("bad geocoder url")
        return httpx.Response(200, json={"display_name": "Main St 10"})

    events = asyncio.run(make_pipeline(httpx.MockTransport(handler)).run())

    assert [(e.id, e.address, e.address_error) for e in events] == [
        ("a", "Main St 10", False),
        ("b", None, True),
    ]
