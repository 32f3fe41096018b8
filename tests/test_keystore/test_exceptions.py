"""Tests for the keystore exception hierarchy."""

from keystore.exceptions import (
    AdapterError,
    CacheError,
    ConfigurationError,
    KeystoreConnectionError,
    KeystoreError,
    StoreError,
)


class TestExceptions:
    def test_hierarchy(self):
        for exc in (ConfigurationError, KeystoreConnectionError, StoreError, CacheError):
            assert issubclass(exc, KeystoreError)
        assert issubclass(StoreError, AdapterError)
        assert issubclass(CacheError, AdapterError)

    def test_adapter_tiers(self):
        assert StoreError("x", operation="get").tier == "durable"
        assert CacheError("x", operation="get").tier == "volatile"

    def test_adapter_error_message(self):
        error = CacheError("timeout", operation="set", key="user:1")

        assert str(error) == "set 'user:1' failed: timeout"
        assert str(StoreError("locked", operation="list_keys")) == "list_keys failed: locked"

    def test_configuration_error_fields(self):
        error = ConfigurationError("bad", fields=["sql_url"])

        assert error.fields == ["sql_url"]
        assert ConfigurationError("bad").fields == []

    def test_connection_error_tier(self):
        error = KeystoreConnectionError("refused", tier="durable")

        assert error.tier == "durable"
        assert str(error) == "refused [durable]"
