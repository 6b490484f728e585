import logging

from streamrelay.config import Settings


def test_cors_origins_parses_csv_values():
    settings = Settings(cors_allowed_origins='https://example.com, https://player.example.com')
    assert settings.cors_origins == ['https://example.com', 'https://player.example.com']


def test_cors_origins_falls_back_when_empty():
    settings = Settings(cors_allowed_origins='   ')
    assert settings.cors_origins == ['*']


def test_upstream_timeout_is_bounded_by_default():
    timeout = Settings().upstream_timeout
    assert timeout.connect == 10.0
    assert timeout.read == 30.0
    assert timeout.write == 10.0
    assert timeout.pool == 10.0


def test_non_positive_timeout_disables_it(caplog):
    settings = Settings(upstream_read_timeout_s=0)
    assert settings.upstream_timeout.read is None
    assert settings.upstream_timeout.connect == 10.0

    with caplog.at_level(logging.WARNING, logger="config"):
        settings.warn_unbounded_timeouts()
    assert "UPSTREAM_READ_TIMEOUT_S" in caplog.text
    assert "UPSTREAM_CONNECT_TIMEOUT_S" not in caplog.text
