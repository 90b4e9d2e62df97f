"""
Main logger class for elasticlog.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, List, NamedTuple, Optional

import requests

from .buckets import bucketed_name, obsolescence_time
from .config import ElasticLogConfig
from .errors import (
    ElasticLogError,
    NotInitializedError,
    ServerConnectionError,
    TransmissionError,
    TransportError,
)
from .provisioning import ProvisioningCoordinator
from .registry import Destination, DrainedBatch, IndexRegistry
from .sender import ElasticTransport
from .wire import (
    Mappings,
    ServerVersion,
    WireGeneration,
    bulk_succeeded,
    encode_record,
    parse_server_info,
    wire_for,
)

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[ElasticLogError], None]

_WORKER_PREFIX = "elasticlog-worker"


class LifecycleState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    DYING = "dying"
    CLOSED = "closed"


class FlushResult(NamedTuple):
    """Outcome of one bulk round."""

    transmitted: int
    records: int
    failures: List[TransmissionError]

    @property
    def ok(self) -> bool:
        return not self.failures


class ElasticLog:
    """
    Buffers documents per index and ships them to Elasticsearch in bulk.

    Features:
    - One ``_bulk`` request per index and round, rounds every flush interval
    - Indices created on first use with the supplied mappings
    - Optional time-bucketed index names, old buckets forgotten over time
    - Orderly shutdown that waits for pending index creations

    Example:
        shipper = ElasticLog(ElasticLogConfig(host="localhost:9200"))
        shipper.initialize()

        shipper.log("status", {"service": "api", "up": True},
                    mappings={"service": {"type": "keyword"}})

        # Don't forget to close on shutdown
        shipper.close()
    """

    def __init__(
        self,
        config: ElasticLogConfig,
        on_error: Optional[ErrorHandler] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize ElasticLog.

        Args:
            config: Connection, timing and bucketing settings
            on_error: Error channel; defaults to logging the error. It may
                run on a worker thread
            session: Custom requests.Session to use for every request
            clock: Returns the current time in epoch seconds
        """
        self.config = config
        self._on_error = on_error or self._default_error_handler
        self._clock = clock

        self._transport = ElasticTransport(
            config.base_url,
            timeout=config.request_timeout,
            headers=config.headers,
            session=session,
            username=config.username,
            password=config.password,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix=_WORKER_PREFIX
        )
        self._registry = IndexRegistry()
        self._provisioner = ProvisioningCoordinator(
            self._transport,
            self._executor,
            self._current_wire,
            self._register,
            self._registry.__contains__,
        )

        self._version: Optional[ServerVersion] = None
        self._wire: Optional[WireGeneration] = None

        # Guards the state and the count of log calls waiting on provisioning
        self._lifecycle = threading.Condition()
        self._state = LifecycleState.UNINITIALIZED
        self._pending_ops = 0

        self._stop_event = threading.Event()
        self._flush_thread: Optional[threading.Thread] = None
        self._sweep_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> ServerVersion:
        """
        Fetch the server version and start the background loops.

        Returns:
            The server version

        Raises:
            ServerConnectionError: the server is unreachable or its version
                can't be parsed; the instance stays uninitialized
        """
        with self._lifecycle:
            if self._state is LifecycleState.INITIALIZED:
                return self._version
            if self._state is not LifecycleState.UNINITIALIZED:
                raise ElasticLogError("logger is closed")

        try:
            status, body = self._transport.request("GET")
        except TransportError as exc:
            raise ServerConnectionError(
                f"can't connect to {self.config.base_url}: {exc}"
            ) from exc
        if status != 200:
            raise ServerConnectionError(
                f"{self.config.base_url} answered {status}"
            )
        version = parse_server_info(body)

        with self._lifecycle:
            if self._state is LifecycleState.INITIALIZED:
                return self._version
            if self._state is not LifecycleState.UNINITIALIZED:
                raise ElasticLogError("logger is closed")
            self._version = version
            self._wire = wire_for(version)
            self._state = LifecycleState.INITIALIZED

        self._flush_thread = threading.Thread(
            target=self._flush_loop, name="elasticlog-flush", daemon=True
        )
        self._flush_thread.start()
        if self.config.bucketing_enabled:
            self._sweep_thread = threading.Thread(
                target=self._sweep_loop, name="elasticlog-sweep", daemon=True
            )
            self._sweep_thread.start()

        logger.info(
            "Connected to %s (version %s, %s wire format)",
            self.config.base_url,
            self._version,
            self._wire.name,
        )
        return self._version

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting records, wait for pending index creations and send
        what is left.

        Args:
            timeout: Maximum seconds to wait for pending index creations,
                None waits until they all settle
        """
        with self._lifecycle:
            if self._state in (LifecycleState.DYING, LifecycleState.CLOSED):
                return
            was_initialized = self._state is LifecycleState.INITIALIZED
            self._state = LifecycleState.DYING

        self._stop_event.set()
        for thread in (self._flush_thread, self._sweep_thread):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=self.config.request_timeout)

        with self._lifecycle:
            settled = self._lifecycle.wait_for(
                lambda: self._pending_ops == 0, timeout=timeout
            )
        if not settled:
            logger.warning(
                "Closing with %d record(s) still waiting for their index",
                self._pending_ops,
            )

        if was_initialized:
            self.flush()

        # A pool thread can't wait for itself, e.g. when on_error calls close().
        on_worker = threading.current_thread().name.startswith(_WORKER_PREFIX)
        self._executor.shutdown(wait=not on_worker)
        self._transport.close()
        with self._lifecycle:
            self._state = LifecycleState.CLOSED
        logger.info("Closed logger for %s", self.config.base_url)

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    def log(
        self,
        index: str,
        record: Any,
        mappings: Optional[Mappings] = None,
        doc_type: str = "doc",
    ) -> Optional[Future]:
        """
        Queue a document for the next bulk round.

        Args:
            index: Base index name, bucket-suffixed when bucketing is on
            record: JSON-serializable document
            mappings: Field mappings used if the index has to be created;
                only looked at on first use of the index
            doc_type: Document type, sent to servers before 7.0

        Returns:
            Future resolved once the record sits in a buffer (failing with
            ProvisioningError if its index can't be created), or None if the
            record was rejected
        """
        with self._lifecycle:
            state = self._state
            if state is LifecycleState.UNINITIALIZED:
                self._report(NotInitializedError("log called before initialize()"))
                return None
            if state is not LifecycleState.INITIALIZED:
                return None

            name = bucketed_name(
                index, self.config.index_bucket_interval_sec, self._clock()
            )
            try:
                lines = self._current_wire().action_line(name, doc_type) + encode_record(record)
            except (TypeError, ValueError) as exc:
                self._report(ElasticLogError(f"can't encode record for {name}: {exc}"))
                return None

            done: Future = Future()
            destination = self._registry.resolve(name)
            if destination is not None:
                self._registry.append(destination, lines)
                done.set_result(None)
                return done

            self._pending_ops += 1

        try:
            provisioned = self._provisioner.ensure_provisioned(name, doc_type, mappings)
        except BaseException:
            self._operation_finished()
            raise
        provisioned.add_done_callback(
            lambda future: self._append_when_provisioned(name, lines, done, future)
        )
        return done

    def _append_when_provisioned(
        self, name: str, lines: str, done: Future, provisioned: Future
    ) -> None:
        try:
            provisioned.result()
        except ElasticLogError as exc:
            # No longer pending, so an error handler may call close().
            self._operation_finished()
            self._report(exc)
            done.set_exception(exc)
            return

        try:
            destination = self._registry.resolve(name) or self._register(name)
            self._registry.append(destination, lines)
            done.set_result(None)
        finally:
            self._operation_finished()

    def _register(self, name: str) -> Destination:
        obsolete_at = obsolescence_time(
            name, self.config.index_bucket_interval_sec, self._clock()
        )
        return self._registry.create(name, obsolete_at)

    def _operation_finished(self) -> None:
        with self._lifecycle:
            self._pending_ops -= 1
            self._lifecycle.notify_all()

    def _current_wire(self) -> WireGeneration:
        if self._wire is None:
            raise NotInitializedError("server version unknown, call initialize()")
        return self._wire

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self) -> FlushResult:
        """
        Send every pending buffer, one concurrent bulk request per index.

        Buffers are emptied before the requests complete, failed rounds are
        reported and not retried.

        Returns:
            Number of requests and records sent, and the failures
        """
        if self._state is LifecycleState.CLOSED:
            return FlushResult(0, 0, [])

        batches = self._registry.drain()
        if not batches:
            return FlushResult(0, 0, [])

        futures = [
            (batch, self._executor.submit(self._transmit, batch))
            for batch in batches
        ]
        failures: List[TransmissionError] = []
        for batch, future in futures:
            try:
                future.result()
            except TransmissionError as exc:
                failures.append(exc)
                self._report(exc)

        records = sum(batch.count for batch in batches)
        logger.debug(
            "Bulk round: %d request(s), %d record(s), %d failure(s)",
            len(batches),
            records,
            len(failures),
        )
        return FlushResult(len(batches), records, failures)

    def _transmit(self, batch: DrainedBatch) -> None:
        try:
            status, body = self._transport.request(
                "POST",
                "_bulk",
                batch.payload,
                headers={"Content-Type": "application/x-ndjson"},
            )
        except TransportError as exc:
            raise TransmissionError(batch.index, batch.count, body=str(exc)) from exc
        if not bulk_succeeded(status, body):
            raise TransmissionError(batch.index, batch.count, status, body)

    def _flush_loop(self) -> None:
        """Background thread that periodically sends the buffers."""
        while not self._stop_event.wait(self.config.flush_interval):
            try:
                self.flush()
            except Exception as exc:
                self._report(ElasticLogError(f"bulk round failed: {exc!r}"))

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def evict_obsolete(self) -> List[str]:
        """Forget bucketed indices older than the retention window."""
        evicted = self._registry.evict_obsolete(self._clock())
        if evicted:
            logger.debug("Dropped %d obsolete index(es): %s", len(evicted), evicted)
        return evicted

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.config.index_bucket_interval_sec):
            try:
                self.evict_obsolete()
            except Exception as exc:
                self._report(ElasticLogError(f"retention sweep failed: {exc!r}"))

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def _report(self, exc: ElasticLogError) -> None:
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("elasticlog: error handler failed")

    def _default_error_handler(self, exc: ElasticLogError) -> None:
        if self.config.log_errors:
            logger.error("elasticlog: %s", exc)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def server_version(self) -> Optional[ServerVersion]:
        return self._version

    @property
    def wire(self) -> Optional[WireGeneration]:
        return self._wire

    @property
    def pending_operations(self) -> int:
        """Number of log calls waiting for their index to be provisioned."""
        with self._lifecycle:
            return self._pending_ops

    def pending_count(self) -> int:
        """Get the number of records waiting for the next bulk round."""
        return self._registry.pending_count()

    def pending_indices(self) -> List[str]:
        return self._registry.pending_names()

    def __contains__(self, index: object) -> bool:
        return index in self._registry

    def __enter__(self):
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
