from __future__ import annotations

import httpx

from cryptodash.services.errors import (
    NETWORK_ERROR_MESSAGE,
    RATE_LIMIT_MESSAGE,
    ApiFailure,
    classify_status,
    credential_hint,
    network_failure,
    scrub,
)


def test_rate_limit_wins_regardless_of_hints():
    for hints in (True, False):
        failure = classify_status(429, provider="coincap", credential_hints=hints)
        assert failure.status_code == 429
        assert failure.message == RATE_LIMIT_MESSAGE


def test_401_names_the_missing_key_only_with_hints():
    hinted = classify_status(401, provider="coingecko", credential_hints=True)
    assert hinted.status_code == 401
    assert "COINGECKO_API_KEY" in hinted.message

    plain = classify_status(401, provider="coingecko")
    assert plain.status_code == 401
    assert plain.message == "Crypto API request failed: 401"


def test_other_statuses_embed_the_code():
    failure = classify_status(503)
    assert failure.status_code == 503
    assert "503" in failure.message


def test_network_failure_is_status_zero():
    failure = network_failure(httpx.ConnectError("dns lookup failed"))
    assert isinstance(failure, ApiFailure)
    assert failure.status_code == 0
    assert failure.message == NETWORK_ERROR_MESSAGE
    assert failure.to_envelope() == {"error": NETWORK_ERROR_MESSAGE, "detail": "dns lookup failed"}


def test_network_failure_scrubs_the_key():
    failure = network_failure(httpx.ConnectError("timed out on /assets?apiKey=s3cret"), secret="s3cret")
    assert failure.detail == "timed out on /assets?apiKey=***"
    assert scrub("no key here", None) == "no key here"


def test_credential_hint_pair():
    error, detail = credential_hint("coincap")
    assert error == "CoinCap rejected the request (401)."
    assert "COINCAP_API_KEY" in detail
