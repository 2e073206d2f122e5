from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from ..config import DEFAULT_EXCHANGE_RATE_TTL, DEFAULT_EXCHANGE_RATE_URL
from ..logging import get_logger


LOG = get_logger("exchange-rates")

# Prices are stored in FCFA (XAF); rates convert one FCFA into each currency.
FALLBACK_RATES: Dict[str, float] = {"FCFA": 1.0, "EUR": 0.00152, "USD": 0.00165}


class ExchangeRateError(RuntimeError):
    pass


class ExchangeRateCache:
    """Time-bounded cache of FCFA exchange rates.

    Fresh rates are served from memory until ``ttl_seconds`` elapse. When a
    refresh fails the last known rates (or FALLBACK_RATES) are returned and
    the failure is logged; callers always get a usable mapping.
    """

    def __init__(
        self,
        url: str = DEFAULT_EXCHANGE_RATE_URL,
        *,
        ttl_seconds: int = DEFAULT_EXCHANGE_RATE_TTL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.url = url
        self.ttl_seconds = int(ttl_seconds)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._clock = clock
        self._lock = threading.Lock()
        self._rates: Optional[Dict[str, float]] = None
        self._last_updated: Optional[float] = None
        self._expires_at: Optional[float] = None

    def _fetch_live(self) -> Dict[str, float]:
        try:
            r = self.session.get(self.url, timeout=self.timeout)
            r.raise_for_status()
            data: Any = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise ExchangeRateError(f"Exchange rate request failed: {exc}") from exc
        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            raise ExchangeRateError("Exchange rate response has no 'rates' object")
        try:
            return {
                "FCFA": 1.0,
                "EUR": float(rates.get("EUR") or FALLBACK_RATES["EUR"]),
                "USD": float(rates.get("USD") or FALLBACK_RATES["USD"]),
            }
        except (TypeError, ValueError) as exc:
            raise ExchangeRateError(f"Exchange rate response has a non-numeric rate: {exc}") from exc

    def get_rates(self) -> Dict[str, float]:
        with self._lock:
            now = self._clock()
            if self._rates is not None and self._expires_at is not None and now < self._expires_at:
                LOG.debug("Using cached exchange rates")
                return dict(self._rates)
            try:
                LOG.info("Fetching live exchange rates from %s", self.url)
                rates = self._fetch_live()
            except ExchangeRateError as exc:
                if self._rates is not None:
                    LOG.warning("%s; serving stale rates", exc)
                    return dict(self._rates)
                LOG.warning("%s; serving fallback rates", exc)
                return dict(FALLBACK_RATES)
            self._rates = rates
            self._last_updated = now
            self._expires_at = now + self.ttl_seconds
            return dict(rates)

    def cache_info(self) -> Dict[str, Optional[float]]:
        with self._lock:
            return {"last_updated": self._last_updated, "expires_at": self._expires_at}
