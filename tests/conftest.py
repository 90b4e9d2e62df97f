"""Shared fixtures: a mocked Elasticsearch server and a ready ElasticLog."""

import json
import time
from urllib.parse import urlparse

import pytest
import responses

from elasticlog import ElasticLog, ElasticLogConfig

HOST = "es.test:9200"
BASE = f"http://{HOST}"

SERVER_INFO_7 = {
    "name": "node-1",
    "cluster_name": "test",
    "version": {"number": "7.17.9", "build_flavor": "default"},
    "tagline": "You Know, for Search",
}
SERVER_INFO_6 = {
    "name": "node-1",
    "cluster_name": "test",
    "version": {"number": "6.8.23"},
    "tagline": "You Know, for Search",
}
BULK_OK = {"took": 3, "errors": False, "items": []}


def calls_to(rsps, method: str, path: str) -> list:
    """Recorded calls matching an HTTP method and URL path."""
    return [
        call
        for call in rsps.calls
        if call.request.method == method and urlparse(call.request.url).path == path
    ]


def bulk_lines(call) -> list:
    body = call.request.body
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    return body.splitlines()


def bulk_documents(call) -> list:
    """Document lines of a bulk request, decoded."""
    return [json.loads(line) for line in bulk_lines(call)[1::2]]


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeClock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def es():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, BASE, json=SERVER_INFO_7)
        yield rsps


@pytest.fixture
def errors():
    return []


@pytest.fixture
def make_shipper(es, errors):
    created = []

    def factory(**overrides):
        options = {
            "host": HOST,
            "flush_interval_ms": 600000,
            "index_bucket_interval_sec": 0,
        }
        clock = overrides.pop("clock", time.time)
        options.update(overrides)
        shipper = ElasticLog(
            ElasticLogConfig(**options), on_error=errors.append, clock=clock
        )
        created.append(shipper)
        return shipper

    yield factory

    for shipper in created:
        shipper.close(timeout=5)


@pytest.fixture
def shipper(es, make_shipper):
    instance = make_shipper()
    instance.initialize()
    return instance
