"""
Check-then-create of destination indices, one request chain per name.
"""

import logging
import threading
from concurrent.futures import Executor, Future
from typing import Callable, Dict, Optional

from .errors import ProvisioningError, TransportError
from .sender import ElasticTransport
from .wire import Mappings, WireGeneration

logger = logging.getLogger(__name__)


class ProvisioningCoordinator:
    """
    Makes sure an index exists with the requested mappings.

    Concurrent requests for the same name share one future, so the server
    sees a single existence check (and at most one create) per name at a
    time. The in-flight entry is removed once the future settles, which
    lets a later request retry after a failure.
    """

    def __init__(
        self,
        transport: ElasticTransport,
        executor: Executor,
        wire: Callable[[], WireGeneration],
        on_provisioned: Callable[[str], None],
        is_provisioned: Callable[[str], bool],
    ):
        """
        Initialize ProvisioningCoordinator.

        Args:
            transport: HTTP transport to the server
            executor: Pool running the check/create requests
            wire: Returns the wire generation selected at initialization
            on_provisioned: Called with the index name once it exists,
                before the shared future resolves
            is_provisioned: Tells whether an index is already registered
        """
        self._transport = transport
        self._executor = executor
        self._wire = wire
        self._on_provisioned = on_provisioned
        self._is_provisioned = is_provisioned
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    def ensure_provisioned(
        self,
        name: str,
        doc_type: str,
        mappings: Optional[Mappings] = None,
    ) -> Future:
        """
        Provision ``name`` or join the provisioning already running for it.

        Returns:
            Future resolving to None once the index can receive documents,
            or failing with ProvisioningError
        """
        with self._lock:
            future = self._in_flight.get(name)
            if future is not None:
                return future
            # The name may have been registered since the caller's lookup.
            already = self._is_provisioned(name)
            if already or mappings is None:
                if not already:
                    # Nothing to enforce, the server creates the index on write.
                    self._on_provisioned(name)
                future = Future()
                future.set_result(None)
                return future
            future = self._executor.submit(self._provision, name, doc_type, mappings)
            self._in_flight[name] = future

        future.add_done_callback(lambda f: self._settle(name, f))
        return future

    def _settle(self, name: str, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(name) is future:
                del self._in_flight[name]

    def _provision(self, name: str, doc_type: str, mappings: Mappings) -> None:
        wire = self._wire()
        try:
            status, _ = self._transport.request(
                "GET", wire.mapping_path(name, doc_type)
            )
            if status == 404:
                logger.debug("Creating index %s", name)
                status, body = self._transport.request(
                    "PUT",
                    name,
                    wire.create_body(doc_type, mappings),
                    headers={"Content-Type": "application/json"},
                )
                if status != 200:
                    raise ProvisioningError(name, f"create returned {status}: {body[:200]}")
            elif status != 200:
                raise ProvisioningError(name, f"existence check returned {status}")
        except TransportError as exc:
            raise ProvisioningError(name, str(exc)) from exc

        self._on_provisioned(name)

    def in_flight(self, name: str) -> bool:
        with self._lock:
            return name in self._in_flight

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)
