"""
Request and response shapes that depend on the server's major version.

Servers before 7.0 expect a document type in mapping paths, create bodies
and bulk action headers. From 7.0 on the type is gone.
"""

import json
import re
from typing import Any, Dict, NamedTuple

from .errors import ServerConnectionError

Mappings = Dict[str, Dict[str, Any]]

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


def _compact(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class ServerVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_server_info(body: str) -> ServerVersion:
    """Extract the version from the root endpoint document."""
    try:
        info = json.loads(body)
        number = info["version"]["number"]
    except (ValueError, TypeError, KeyError) as exc:
        raise ServerConnectionError(
            f"invalid elasticsearch server:\n{body[:500]}"
        ) from exc

    match = _VERSION_RE.match(str(number))
    if not match:
        raise ServerConnectionError(
            f"invalid elasticsearch server version: {number!r}"
        )
    return ServerVersion(*(int(part) for part in match.groups()))


class WireGeneration:
    """Encoders for one generation of the REST API."""

    name = "base"

    def mapping_path(self, index: str, doc_type: str) -> str:
        raise NotImplementedError

    def create_body(self, doc_type: str, mappings: Mappings) -> str:
        raise NotImplementedError

    def action_line(self, index: str, doc_type: str) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class ModernWire(WireGeneration):
    """Servers 7.0 and later: typeless mappings and bulk actions."""

    name = "modern"

    def mapping_path(self, index: str, doc_type: str) -> str:
        return f"{index}/_mapping"

    def create_body(self, doc_type: str, mappings: Mappings) -> str:
        return _compact({"mappings": {"properties": mappings}})

    def action_line(self, index: str, doc_type: str) -> str:
        return _compact({"index": {"_index": index}}) + "\n"


class LegacyWire(WireGeneration):
    """Servers before 7.0: every mapping and action names its type."""

    name = "legacy"

    def mapping_path(self, index: str, doc_type: str) -> str:
        return f"{index}/_mapping/{doc_type}"

    def create_body(self, doc_type: str, mappings: Mappings) -> str:
        return _compact({"mappings": {doc_type: {"properties": mappings}}})

    def action_line(self, index: str, doc_type: str) -> str:
        return _compact({"index": {"_index": index, "_type": doc_type}}) + "\n"


MODERN = ModernWire()
LEGACY = LegacyWire()


def wire_for(version: ServerVersion) -> WireGeneration:
    return MODERN if version.major >= 7 else LEGACY


def encode_record(record: Any) -> str:
    """Serialize one document as a bulk body line."""
    return _compact(record) + "\n"


def bulk_succeeded(status: int, body: str) -> bool:
    """
    Tell whether a bulk response accepted every document.

    The response must be a 200 whose JSON body carries ``"errors": false``.
    A body without the field is treated as a failure.
    """
    if status != 200:
        return False
    try:
        result = json.loads(body)
    except ValueError:
        return False
    return isinstance(result, dict) and result.get("errors") is False
