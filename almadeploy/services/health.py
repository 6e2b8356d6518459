"""Post-deploy health probing."""

import ipaddress
import time
import warnings
from typing import Callable, Optional
from urllib.parse import urlsplit

import requests
from urllib3.exceptions import InsecureRequestWarning

from almadeploy import constants
from almadeploy.exceptions import HealthCheckTimeout
from almadeploy.logger import DeployLogger


class HealthProbe:
    """Polls an HTTP health endpoint with a fixed attempt budget."""

    def __init__(
        self,
        url: str,
        host_header: Optional[str] = None,
        attempts: int = constants.DEFAULT_HEALTH_ATTEMPTS,
        interval: float = constants.DEFAULT_HEALTH_INTERVAL,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize probe.

        Args:
            url: Endpoint to GET
            host_header: Host header to send (the public domain)
            attempts: Maximum number of probes
            interval: Seconds slept between probes
            session: requests session (injectable for tests)
            sleep: Sleep function (injectable for tests)
        """
        self.url = url
        self.host_header = host_header
        self.attempts = attempts
        self.interval = interval
        self.session = session or requests.Session()
        self.sleep = sleep

    def probe(self) -> bool:
        """Perform a single probe. True if the endpoint reports UP."""
        headers = {"Host": self.host_header} if self.host_header else {}
        verify = not is_loopback(self.url)
        try:
            with warnings.catch_warnings():
                # Loopback address never matches the certificate name
                warnings.simplefilter("ignore", InsecureRequestWarning)
                response = self.session.get(
                    self.url,
                    headers=headers,
                    timeout=constants.HEALTH_REQUEST_TIMEOUT,
                    verify=verify,
                )
        except requests.exceptions.RequestException:
            return False

        if response.status_code != 200:
            return False
        try:
            payload = response.json()
        except ValueError:
            return False
        return isinstance(payload, dict) and payload.get("status") == "UP"

    def wait_until_healthy(self, logger: Optional[DeployLogger] = None) -> int:
        """
        Probe until healthy or the budget is exhausted.

        Returns:
            Number of attempts used

        Raises:
            HealthCheckTimeout: If no probe succeeded
        """
        for attempt in range(1, self.attempts + 1):
            if self.probe():
                return attempt
            if logger:
                logger.log(
                    f"Health probe {attempt}/{self.attempts} against {self.url} not healthy",
                    "DEBUG",
                )
            if attempt < self.attempts:
                self.sleep(self.interval)
        raise HealthCheckTimeout(self.url, self.attempts, self.interval)


def is_loopback(url: str) -> bool:
    """True if the URL points at this host."""
    hostname = urlsplit(url).hostname or ""
    if hostname == "localhost":
        return True
    try:
        return ipaddress.ip_address(hostname).is_loopback
    except ValueError:
        return False
