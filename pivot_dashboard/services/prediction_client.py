"""Async client for the pivot prediction backend."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from pivot_dashboard.core.config import Settings, settings as default_settings
from pivot_dashboard.core.logging import error_context
from pivot_dashboard.schemas.prediction import PredictionRequest, PredictionResponse
from pivot_dashboard.utils.timing import TimingLogger

logger = logging.getLogger(__name__)


class PredictionFetchError(Exception):
    """The backend could not produce a usable response.

    ``reason`` is one of ``transport`` (connection/timeout), ``status``
    (non-2xx) or ``decode`` (body is not a valid prediction payload).
    """

    def __init__(self, symbol: str, reason: str, message: str):
        super().__init__(f"Prediction fetch for {symbol} failed ({reason}): {message}")
        self.symbol = symbol
        self.reason = reason


class PredictionClient:
    """POSTs prediction requests and validates the responses.

    The underlying ``httpx.AsyncClient`` is created lazily and closed by
    :meth:`aclose`; a caller-supplied client is used as is and left open.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or default_settings
        self.url = self.settings.PREDICT_API_URL
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.PREDICT_TIMEOUT_SECONDS)
        return self._client

    async def predict(self, symbol: str) -> PredictionResponse:
        """Fetch predictions for ``symbol`` across all dashboard intervals.

        Raises:
            PredictionFetchError: on any transport, status or decode failure.
        """
        body = PredictionRequest(symbol=symbol).model_dump()

        with error_context("predict", symbol=symbol):
            async with TimingLogger("predict", logger, symbol=symbol):
                try:
                    response = await self._get_client().post(self.url, json=body)
                except httpx.HTTPError as e:
                    raise PredictionFetchError(symbol, "transport", str(e) or type(e).__name__) from e

            if response.is_error:
                raise PredictionFetchError(
                    symbol, "status", f"HTTP {response.status_code} from {self.url}"
                )

            try:
                return PredictionResponse.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                raise PredictionFetchError(symbol, "decode", str(e)) from e

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


__all__ = ["PredictionClient", "PredictionFetchError"]
