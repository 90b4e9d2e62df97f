"""Tests for ElasticLogConfig and the environment loader."""

import pytest

from elasticlog.config import ElasticLogConfig, load_config_from_env


class TestDefaults:
    def test_documented_defaults(self):
        config = ElasticLogConfig(host="localhost:9200")
        assert config.request_timeout_ms == 30000
        assert config.flush_interval_ms == 5000
        assert config.index_bucket_interval_sec == 3600
        assert config.log_errors is True
        assert config.bucketing_enabled

    def test_seconds_properties(self):
        config = ElasticLogConfig(
            host="localhost:9200", request_timeout_ms=1500, flush_interval_ms=250
        )
        assert config.request_timeout == 1.5
        assert config.flush_interval == 0.25

    def test_zero_interval_disables_bucketing(self):
        config = ElasticLogConfig(host="h", index_bucket_interval_sec=0)
        assert not config.bucketing_enabled


class TestBaseUrl:
    def test_bare_host_gets_http(self):
        assert ElasticLogConfig(host="es:9200").base_url == "http://es:9200"

    def test_full_url_kept(self):
        config = ElasticLogConfig(host="https://es.example.com:9243/")
        assert config.base_url == "https://es.example.com:9243"


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"host": ""},
            {"host": "   "},
            {"request_timeout_ms": 0},
            {"flush_interval_ms": -1},
            {"index_bucket_interval_sec": -5},
            {"max_workers": 0},
            {"username": "elastic"},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        options = {"host": "localhost:9200", **overrides}
        with pytest.raises(ValueError):
            ElasticLogConfig(**options)

    def test_credentials_together_accepted(self):
        config = ElasticLogConfig(host="h", username="elastic", password="secret")
        assert config.username == "elastic"


class TestLoadFromEnv:
    def test_empty_env_uses_defaults(self):
        config = load_config_from_env({})
        assert config.host == "localhost:9200"
        assert config.flush_interval_ms == 5000
        assert config.log_errors is True

    def test_env_overrides(self):
        config = load_config_from_env(
            {
                "ELASTICLOG_HOST": "https://logs:9200",
                "ELASTICLOG_REQUEST_TIMEOUT_MS": "1000",
                "ELASTICLOG_FLUSH_INTERVAL_MS": "200",
                "ELASTICLOG_INDEX_BUCKET_INTERVAL_SEC": "0",
                "ELASTICLOG_LOG_ERRORS": "no",
                "ELASTICLOG_USERNAME": "elastic",
                "ELASTICLOG_PASSWORD": "changeme",
            }
        )
        assert config.base_url == "https://logs:9200"
        assert config.request_timeout_ms == 1000
        assert config.flush_interval_ms == 200
        assert not config.bucketing_enabled
        assert config.log_errors is False
        assert config.password == "changeme"
