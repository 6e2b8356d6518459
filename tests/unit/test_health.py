"""Unit tests for the health probe and its attempt budget."""

from unittest.mock import MagicMock

import pytest
import requests

from almadeploy.exceptions import HealthCheckTimeout
from almadeploy.services.health import HealthProbe

URL = "https://127.0.0.1/actuator/health"


def response(status_code: int = 200, payload=None) -> MagicMock:
    mock = MagicMock()
    mock.status_code = status_code
    if isinstance(payload, Exception):
        mock.json.side_effect = payload
    else:
        mock.json.return_value = payload
    return mock


def make_probe(*responses, attempts: int = 3, interval: float = 2.0):
    session = MagicMock()
    session.get.side_effect = list(responses)
    sleep = MagicMock()
    probe = HealthProbe(
        URL,
        host_header="app.example.com",
        attempts=attempts,
        interval=interval,
        session=session,
        sleep=sleep,
    )
    return probe, session, sleep


class TestProbe:
    """Tests for a single probe."""

    def test_up(self) -> None:
        probe, session, _ = make_probe(response(200, {"status": "UP"}))
        assert probe.probe() is True
        kwargs = session.get.call_args.kwargs
        assert kwargs["headers"] == {"Host": "app.example.com"}
        assert kwargs["verify"] is False

    @pytest.mark.parametrize(
        "result",
        [
            response(200, {"status": "DOWN"}),
            response(503, {"status": "UP"}),
            response(200, ValueError("not json")),
            response(200, ["UP"]),
            requests.exceptions.ConnectionError("refused"),
        ],
    )
    def test_not_healthy(self, result) -> None:
        probe, _, _ = make_probe(result)
        assert probe.probe() is False

    @pytest.mark.parametrize(
        "url, verify",
        [
            ("https://127.0.0.1/actuator/health", False),
            ("https://[::1]:8443/actuator/health", False),
            ("https://localhost/actuator/health", False),
            ("https://app.example.com/actuator/health", True),
            ("https://10.0.0.5/actuator/health", True),
        ],
    )
    def test_verification_only_skipped_on_loopback(self, url: str, verify: bool) -> None:
        session = MagicMock()
        session.get.return_value = response(200, {"status": "UP"})
        HealthProbe(url, session=session).probe()
        assert session.get.call_args.kwargs["verify"] is verify


class TestWaitUntilHealthy:
    """Tests for the bounded polling loop."""

    def test_returns_attempt_number(self) -> None:
        probe, session, sleep = make_probe(
            requests.exceptions.ConnectionError(),
            response(200, {"status": "UP"}),
        )
        assert probe.wait_until_healthy() == 2
        assert session.get.call_count == 2
        sleep.assert_called_once_with(2.0)

    def test_budget_exhausted(self) -> None:
        probe, session, sleep = make_probe(
            *[response(502) for _ in range(5)], attempts=5, interval=1.5
        )
        with pytest.raises(HealthCheckTimeout) as exc_info:
            probe.wait_until_healthy()

        assert session.get.call_count == 5
        assert sleep.call_count == 4
        assert exc_info.value.attempts == 5
        assert exc_info.value.url == URL

    def test_single_attempt_never_sleeps(self) -> None:
        probe, _, sleep = make_probe(response(500), attempts=1)
        with pytest.raises(HealthCheckTimeout):
            probe.wait_until_healthy()
        sleep.assert_not_called()
