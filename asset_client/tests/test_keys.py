"""
Unit tests for cache key derivation.
"""

import itertools

import pytest

from asset_client.app.caching.keys import CacheKeys, derive_key


class Marker:
    def __str__(self) -> str:
        return "marker"


class TestDeriveKey:
    """Test cases for derive_key."""

    def test_key_layout(self):
        """Key is method, url and sorted params joined by colons."""
        key = derive_key("get", "/devices", {"status": "running", "page": 1})

        assert key == 'get:/devices:{"page":1,"status":"running"}'

    def test_params_order_does_not_matter(self):
        """Every permutation of the params derives the same key."""
        items = [("page", 2), ("pageSize", 20), ("rackId", "RACK-A01"), ("status", "running")]
        keys = {
            derive_key("get", "/devices", dict(permutation))
            for permutation in itertools.permutations(items)
        }

        assert len(keys) == 1

    def test_nested_params_are_sorted(self):
        """Nested mappings are encoded with sorted keys too."""
        first = derive_key("get", "/tickets", {"filter": {"b": 1, "a": 2}})
        second = derive_key("get", "/tickets", {"filter": {"a": 2, "b": 1}})

        assert first == second

    def test_different_values_give_different_keys(self):
        """Changing a parameter value changes the key."""
        assert derive_key("get", "/devices", {"page": 1}) != derive_key("get", "/devices", {"page": 2})

    @pytest.mark.parametrize("params", [None, {}])
    def test_absent_params_encode_empty(self, params):
        """Missing and empty params produce an empty component."""
        assert derive_key("get", "/rooms", params) == "get:/rooms:"

    def test_method_is_case_insensitive(self):
        """GET and get share a key."""
        assert derive_key("GET", "/racks") == derive_key("get", "/racks")

    def test_non_json_values_are_stringified(self):
        """Values json cannot encode fall back to str()."""
        key = derive_key("get", "/tickets/statistics", {"since": Marker()})

        assert key == 'get:/tickets/statistics:{"since":"marker"}'

    def test_mixed_key_types_are_sorted_as_strings(self):
        """Non-string keys, nested ones included, are converted before sorting."""
        key = derive_key("get", "/devices", {1: "a", "b": {2: "x", "c": [{3: True}]}})

        assert key == 'get:/devices:{"1":"a","b":{"2":"x","c":[{"3":true}]}}'

    def test_tuple_values_encode_as_lists(self):
        """Tuples and lists of the same items share a key."""
        assert derive_key("get", "/devices", {"ids": ("DEV-1", "DEV-2")}) == derive_key(
            "get", "/devices", {"ids": ["DEV-1", "DEV-2"]}
        )


class TestCacheKeys:
    """Test cases for CacheKeys helpers."""

    def test_parse_key_without_params(self):
        """Keys with an empty params component parse back."""
        assert CacheKeys.parse_key("get:/devices/7:") == {"method": "get", "url": "/devices/7", "params": ""}

    def test_parse_key_with_params(self):
        """Params component is returned verbatim."""
        key = derive_key("get", "/devices", {"page": 1})

        assert CacheKeys.parse_key(key) == {"method": "get", "url": "/devices", "params": '{"page":1}'}

    def test_parse_key_with_absolute_url(self):
        """Colons inside the url do not confuse the parser."""
        key = derive_key("get", "http://localhost:3000/api/rooms", {"q": "a"})

        parsed = CacheKeys.parse_key(key)

        assert parsed["url"] == "http://localhost:3000/api/rooms"
        assert parsed["params"] == '{"q":"a"}'

    def test_parse_key_rejects_garbage(self):
        """Strings that are not derived keys return None."""
        assert CacheKeys.parse_key("not-a-key") is None

    @pytest.mark.parametrize(
        "path,scope",
        [
            ("/devices", "/devices"),
            ("/devices/42", "/devices"),
            ("/consumables/logs/export", "/consumables"),
            ("/", "/"),
        ],
    )
    def test_resource_scope(self, path, scope):
        """Collection path is the first path segment."""
        assert CacheKeys.resource_scope(path) == scope
