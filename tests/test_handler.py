"""Tests for the standard logging integration."""

import logging

import pytest

from elasticlog import ElasticLog, ElasticLogConfig, NotInitializedError
from elasticlog.handler import DEFAULT_MAPPINGS, ElasticHandler


class RecordingShipper:
    """Stands in for ElasticLog and keeps what it is given."""

    def __init__(self):
        self.logged = []
        self.flushes = 0
        self.closed = False

    def log(self, index, record, mappings=None, doc_type="doc"):
        self.logged.append((index, record, mappings, doc_type))

    def flush(self):
        self.flushes += 1

    def close(self):
        self.closed = True


@pytest.fixture
def shipper():
    return RecordingShipper()


@pytest.fixture
def app_logger():
    log = logging.getLogger("myapp.tests")
    log.setLevel(logging.DEBUG)
    log.propagate = False
    yield log
    for handler in list(log.handlers):
        log.removeHandler(handler)


class TestEmit:
    def test_document_fields(self, shipper, app_logger):
        app_logger.addHandler(
            ElasticHandler(shipper, index="app-logs", extra_fields={"env": "test"})
        )

        app_logger.info("user %s logged in", "ana", extra={"user_id": 42})

        index, doc, mappings, doc_type = shipper.logged[0]
        assert index == "app-logs"
        assert mappings == DEFAULT_MAPPINGS
        assert doc_type == "doc"
        assert doc["message"] == "user ana logged in"
        assert doc["level"] == "INFO"
        assert doc["level_num"] == logging.INFO
        assert doc["logger"] == "myapp.tests"
        assert doc["function"] == "test_document_fields"
        assert doc["env"] == "test"
        assert doc["extra"] == {"user_id": 42}

    def test_exception_included(self, shipper, app_logger):
        app_logger.addHandler(ElasticHandler(shipper, index="app-logs"))

        try:
            raise ValueError("broken")
        except ValueError:
            app_logger.exception("failed")

        doc = shipper.logged[0][1]
        assert "ValueError: broken" in doc["exception"]

    def test_unserializable_extra_stringified(self, shipper, app_logger):
        app_logger.addHandler(ElasticHandler(shipper, index="app-logs"))

        app_logger.warning("odd", extra={"thing": object()})

        extra = shipper.logged[0][1]["extra"]
        assert extra["thing"].startswith("<object object")

    def test_level_filtering(self, shipper, app_logger):
        app_logger.addHandler(
            ElasticHandler(shipper, index="app-logs", level=logging.WARNING)
        )

        app_logger.info("ignored")
        app_logger.error("kept")

        assert [doc["message"] for _, doc, _, _ in shipper.logged] == ["kept"]


class TestLifecycle:
    def test_index_required(self, shipper):
        with pytest.raises(ValueError):
            ElasticHandler(shipper, index="")

    def test_flush_delegates(self, shipper):
        ElasticHandler(shipper, index="app-logs").flush()
        assert shipper.flushes == 1

    def test_close_leaves_shipper_open_by_default(self, shipper):
        ElasticHandler(shipper, index="app-logs").close()
        assert not shipper.closed

    def test_close_shipper(self, shipper):
        ElasticHandler(shipper, index="app-logs", close_shipper=True).close()
        assert shipper.closed


class CountingShipper(ElasticLog):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.log_calls = 0

    def log(self, *args, **kwargs):
        self.log_calls += 1
        return super().log(*args, **kwargs)


class TestOwnRecords:
    def test_library_records_not_shipped(self, shipper):
        handler = ElasticHandler(shipper, index="app-logs")
        library_logger = logging.getLogger("elasticlog.logger")
        library_logger.addHandler(handler)
        try:
            library_logger.error("elasticlog: bulk request failed")
        finally:
            library_logger.removeHandler(handler)

        assert shipper.logged == []

    def test_root_handler_does_not_feed_itself(self):
        errors = []

        def report(exc):
            errors.append(exc)
            logging.getLogger("elasticlog.logger").error("elasticlog: %s", exc)

        shipper = CountingShipper(ElasticLogConfig(host="es.test:9200"), on_error=report)
        handler = ElasticHandler(shipper, index="app-logs")
        root = logging.getLogger()
        root.addHandler(handler)
        try:
            # not initialized: the shipper reports an error for this record
            logging.getLogger("myapp").warning("hello")
        finally:
            root.removeHandler(handler)
            shipper.close()

        assert shipper.log_calls == 1
        assert len(errors) == 1
        assert isinstance(errors[0], NotInitializedError)
