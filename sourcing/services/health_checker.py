# sourcing/services/health_checker.py

"""Connectivity probes for the platform API, extraction services and sites."""

import asyncio
import logging
import time
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from sourcing.config.settings import Settings

logger = logging.getLogger("product_sourcing.health")

_HEALTH_TIMEOUT = 10  # seconds per target
_SLOW_THRESHOLD_MS = 5000


@dataclass
class HealthResult:
    """Result of a single endpoint health check."""

    target_id: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def default_targets(settings: Settings | None = None) -> list[dict[str, str]]:
    """Endpoints worth probing: API gateway, paid services, platform homepages."""
    settings = settings or Settings()
    targets = [
        {"id": "platform_api", "url": settings.API_URL},
        {"id": "scrapingbee", "url": settings.SCRAPINGBEE_URL},
        {"id": "scraperapi", "url": settings.SCRAPERAPI_URL},
    ]
    for platform_id, info in settings.SUPPORTED_PLATFORMS.items():
        targets.append({"id": platform_id, "url": info["homepage"]})
    return targets


def probe_target(
    target: dict[str, str], session: curl_requests.Session,
) -> HealthResult:
    """GET one endpoint and classify it.

    Any HTTP answer below 500 counts as reachable, since the API and
    the paid services reject unauthenticated probes with 4xx.
    """
    target_id = target["id"]
    start = time.monotonic()
    try:
        resp = session.get(
            target["url"],
            headers=Settings.DEFAULT_HEADERS,
            timeout=_HEALTH_TIMEOUT,
        )
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            target_id=target_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )

    elapsed_ms = (time.monotonic() - start) * 1000
    if resp.status_code >= 500:
        return HealthResult(
            target_id=target_id,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    if elapsed_ms > _SLOW_THRESHOLD_MS:
        return HealthResult(
            target_id=target_id,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )
    return HealthResult(
        target_id=target_id,
        status="ok",
        latency_ms=elapsed_ms,
        message="" if resp.status_code < 400 else f"HTTP {resp.status_code}",
    )


class HealthChecker:
    """Runs concurrent health probes against every target."""

    def __init__(
        self, targets: list[dict[str, str]] | None = None,
    ) -> None:
        self.targets = targets if targets is not None else default_targets()
        self.session = curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    async def check_all(self) -> list[HealthResult]:
        """Probe every registered target concurrently."""
        tasks = [
            asyncio.to_thread(probe_target, target, self.session)
            for target in self.targets
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.target_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
