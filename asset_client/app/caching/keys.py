"""Cache key schema for the Asset Manager client.

Key format: {method}:{url}:{params}

Where:
- method: lower-cased HTTP method ("get")
- url: request path relative to the API base ("/devices/42")
- params: compact JSON of the query parameters with keys sorted
  lexicographically, or the empty string when there are none

Two parameter sets that serialize identically collide on purpose; keys are
identities for equal requests, not hashes of arbitrary objects.
"""

import json
from typing import Any, Dict, Mapping, Optional


def _stringify_keys(value: Any) -> Any:
    # JSON object keys are strings anyway; converting first lets mixed key types sort
    if isinstance(value, Mapping):
        return {str(key): _stringify_keys(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_keys(item) for item in value]
    return value


def _encode_params(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    return json.dumps(
        _stringify_keys(params), sort_keys=True, separators=(",", ":"), default=str, ensure_ascii=False
    )


def derive_key(method: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build the canonical cache identity of a request.

    Parameter insertion order never affects the result; ``None`` and an
    empty mapping both encode as the empty component.
    """
    return f"{method.lower()}:{path}:{_encode_params(params)}"


class CacheKeys:
    """Helpers for working with derived keys."""

    @staticmethod
    def parse_key(key: str) -> Optional[Dict[str, str]]:
        """Split a derived key into its components.

        Returns None if the key doesn't match the expected format. The url
        may itself contain colons (absolute urls), so the params component is
        located at the first ``:{``; it is either empty or a JSON object.
        """
        method, sep, rest = key.partition(":")
        if not sep or not method:
            return None

        if rest.endswith(":"):
            return {"method": method, "url": rest[:-1], "params": ""}

        marker = rest.find(":{")
        if marker == -1:
            return None
        return {"method": method, "url": rest[:marker], "params": rest[marker + 1:]}

    @staticmethod
    def resource_scope(path: str) -> str:
        """Collection path of a resource url: ``/devices/42`` -> ``/devices``."""
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            return "/"
        return f"/{segments[0]}"
