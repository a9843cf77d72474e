"""Tests for remote error classification and user-facing copy."""

from __future__ import annotations

import httpx
import pytest

from calcana_sync.action_messages import (
    build_actionable_error,
    build_actionable_warning,
    build_empty_list_message,
    build_results_found_notification,
    build_send_report_confirmation_prompt,
    build_status_change_confirmation_prompt,
)
from calcana_sync.errors import (
    ConflictError,
    NetworkOrServerError,
    NotFoundError,
    RemoteError,
    classify_remote_error,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [(404, NotFoundError), (409, ConflictError), (500, NetworkOrServerError)],
)
def test_classify_by_status(http_error, status, expected) -> None:
    error = classify_remote_error(http_error(status), "fallback")

    assert type(error) is expected
    assert error.status_code == status
    assert error.message == "fallback"


def test_server_message_wins_over_fallback(http_error) -> None:
    error = classify_remote_error(http_error(400, "  Email já cadastrado "), "fallback")

    assert error.message == "Email já cadastrado"


def test_non_json_error_body_uses_fallback() -> None:
    request = httpx.Request("GET", "http://backend.test/x")
    response = httpx.Response(502, request=request, text="<html>Bad gateway</html>")
    exc = httpx.HTTPStatusError("HTTP 502", request=request, response=response)

    assert classify_remote_error(exc, "fallback").message == "fallback"


def test_transport_and_payload_failures_are_network_errors() -> None:
    for exc in (httpx.ConnectError("refused"), OSError("reset"), ValueError("bad json")):
        error = classify_remote_error(exc, "fallback")
        assert isinstance(error, NetworkOrServerError)
        assert error.status_code is None


def test_remote_errors_pass_through() -> None:
    error = ConflictError("in use", status_code=409)

    assert classify_remote_error(error, "fallback") is error
    assert isinstance(error, RemoteError)


def test_actionable_error_lines() -> None:
    message = build_actionable_error("load suppliers", why="timeout", next_step="try again")

    assert message.splitlines() == [
        "Could not load suppliers.",
        "Why: timeout.",
        "Next step: try again.",
    ]
    assert build_actionable_error("x", next_step="retry?").splitlines() == [
        "Could not x.",
        "Next step: retry?",
    ]


def test_actionable_warning_without_reason() -> None:
    assert build_actionable_warning("Pick one", next_step="choose") == (
        "Pick one.\nNext step: choose."
    )


def test_results_found_pluralizes() -> None:
    assert build_results_found_notification(1, "analysis", "analyses") == "1 analysis found."
    assert build_results_found_notification(0, "analysis", "analyses") == "0 analyses found."
    assert build_results_found_notification(5, "supplier") == "5 suppliers found."


def test_empty_list_message_variants() -> None:
    assert build_empty_list_message("analyses", search="", status=None) == "No analyses found."
    assert (
        build_empty_list_message("properties", search="", status="inativos")
        == 'No properties found for "inativos".'
    )


def test_confirmation_prompts() -> None:
    assert (
        build_status_change_confirmation_prompt("reactivate", "property", "Fazenda")
        == 'Are you sure you want to REACTIVATE the property "Fazenda"?'
    )
    assert (
        build_send_report_confirmation_prompt(77, "")
        == "Email the report for sample #77 to the supplier?"
    )
