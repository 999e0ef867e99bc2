"""
FedEx REST API client.

Handles:
- OAuth client-credentials tokens (separate token for the Track API)
- Retries on expired tokens and rate limiting
- Address validation, rate quotes and shipment tracking

FedEx API Documentation:
https://developer.fedex.com/api/en-us/catalog.html
"""

import asyncio
import re
import time
from typing import Any

import httpx
from loguru import logger

from artgallery.core.errors import FedExAPIError
from artgallery.modules.fedex.config import FedExConfig, get_fedex_config
from artgallery.modules.fedex.parsing import (
    build_package_line_items,
    destination_address,
    estimated_rates,
    mock_tracking,
    parse_address_resolution,
    parse_rate,
    parse_tracking,
    total_insured_value,
)

ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

TRACK_NOT_AUTHORIZED = "TRACK_API_NOT_AUTHORIZED"

# Refresh tokens this many seconds before FedEx expires them
TOKEN_EXPIRY_MARGIN = 5 * 60


class _Token:
    def __init__(self) -> None:
        self.value: str | None = None
        self.expires_at: float = 0.0

    def valid(self) -> bool:
        return bool(self.value) and time.monotonic() < self.expires_at

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0


class FedExClient:
    """
    Async client for the FedEx REST APIs.

    Usage:
        fedex = FedExClient()
        quote = await fedex.get_rates(destination, packages)
    """

    MAX_RETRIES = 3
    RETRY_DELAY = 1.0

    def __init__(
        self,
        config: FedExConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float | None = None,
    ) -> None:
        self.config = config or get_fedex_config()
        self.retry_delay = self.RETRY_DELAY if retry_delay is None else retry_delay
        self._transport = transport
        self._token = _Token()
        self._track_token = _Token()

    @property
    def is_production(self) -> bool:
        return self.config.is_production

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    # ==================== Authentication ====================

    async def _get_token(self, track: bool = False, force_refresh: bool = False) -> str:
        token = self._track_token if track else self._token
        if not force_refresh and token.valid():
            return token.value

        creds = self.config.credentials
        client_id, client_secret = creds.track if track else (creds.client_id, creds.client_secret)
        label = "Track" if track else "main"

        if not client_id or not client_secret:
            raise FedExAPIError(f"FedEx {label} API credentials are not configured")

        logger.info(f"Requesting FedEx {label} API token ({self.config.environment})")

        try:
            async with self._client() as client:
                response = await client.post(
                    "/oauth/token",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": client_id,
                        "client_secret": client_secret,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            token.clear()
            logger.error(f"FedEx token error: {e.response.status_code}")
            raise FedExAPIError(_error_body(e.response), status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            token.clear()
            logger.error(f"FedEx token request error: {e}")
            raise FedExAPIError(f"Failed to get FedEx access token: {e}") from e

        token.value = data["access_token"]
        token.expires_at = time.monotonic() + int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN
        return token.value

    # ==================== Requests ====================

    async def request(
        self,
        path: str,
        payload: dict[str, Any],
        track: bool = False,
    ) -> dict[str, Any]:
        """
        POST to a FedEx endpoint.

        Retries once with a fresh token on 401 and backs off exponentially
        on 429.

        Raises:
            FedExAPIError: Any other failure
        """
        token = await self._get_token(track=track)
        refreshed = False
        attempt = 0

        async with self._client() as client:
            while True:
                try:
                    response = await client.post(
                        path,
                        json=payload,
                        headers={
                            "Authorization": f"Bearer {token}",
                            "Content-Type": "application/json",
                            "X-locale": "en_US",
                        },
                    )
                except httpx.RequestError as e:
                    logger.error(f"FedEx request error on {path}: {e}")
                    raise FedExAPIError(str(e)) from e

                if response.status_code == 401 and not refreshed:
                    logger.warning("FedEx token rejected, refreshing")
                    token = await self._get_token(track=track, force_refresh=True)
                    refreshed = True
                    continue

                if response.status_code == 429 and attempt < self.MAX_RETRIES:
                    delay = self.retry_delay * 2**attempt
                    attempt += 1
                    logger.warning(f"FedEx rate limited, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue

                if response.is_success:
                    return response.json()

                body = _error_body(response)
                if track and response.status_code == 403 and _has_error_code(body, "FORBIDDEN.ERROR"):
                    raise FedExAPIError(body, status_code=403, code=TRACK_NOT_AUTHORIZED)

                logger.error(f"FedEx API error on {path}: {response.status_code}")
                raise FedExAPIError(body, status_code=response.status_code)

    # ==================== Address validation ====================

    async def validate_address(self, address: dict[str, Any]) -> dict[str, Any]:
        """
        Validate a US address.

        Never raises for FedEx failures; the result then asks for manual
        verification instead.
        """
        city = (address.get("city") or "").strip()
        state = (address.get("state_code") or "").strip().upper()
        zip_code = (address.get("zip_code") or "").strip()

        if not city or not state or not zip_code:
            return _manual_verification("City, state, and ZIP code are required")
        if not ZIP_CODE_PATTERN.match(zip_code):
            return _manual_verification("Invalid ZIP code format")

        submitted = destination_address(address)
        submitted.pop("residential")

        try:
            result = await self.request(
                "/address/v1/addresses/resolve",
                {"addressesToValidate": [{"address": submitted}]},
            )
        except FedExAPIError as e:
            logger.error(f"FedEx address validation failed: {e}")
            return _manual_verification(_first_message(e.payload) or "Address validation service unavailable")

        resolved = (result.get("output") or {}).get("resolvedAddresses") or []
        if not resolved:
            result = _manual_verification("No matching addresses found")
            result["success"] = True
            result["messages"] = ["Address could not be validated by FedEx"]
            return result

        return parse_address_resolution(resolved[0], submitted)

    # ==================== Rates ====================

    async def get_rates(
        self,
        destination: dict[str, Any],
        packages: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Quote every available service for a shipment.

        Args:
            destination: Storefront address dict (street_line1, city, state_code, zip_code)
            packages: [{weight, length, width, height, insured_value}] in lb / in

        Returns:
            {rates, currency, from_warehouse, is_estimated} with rates sorted by price

        Raises:
            FedExAPIError: FedEx rejected the request or returned no usable rates
        """
        if not destination.get("zip_code"):
            raise FedExAPIError("Destination ZIP code is required")
        if not packages:
            raise FedExAPIError("At least one package is required")

        warehouse = self.config.get_warehouse(destination.get("state_code"))
        payload = {
            "accountNumber": {"value": self.config.credentials.account_number},
            "rateRequestControlParameters": {"returnTransitTimes": True},
            "requestedShipment": {
                "shipper": {"address": warehouse.to_fedex_address()},
                "recipient": {"address": destination_address(destination)},
                "pickupType": "DROPOFF_AT_FEDEX_LOCATION",
                "rateRequestType": ["ACCOUNT", "LIST"],
                "totalInsuredValue": {
                    "amount": total_insured_value(packages),
                    "currency": "USD",
                },
                "requestedPackageLineItems": build_package_line_items(packages),
            },
        }

        result = await self.request("/rate/v1/rates/quotes", payload)
        output = result.get("output") or {}
        details = output.get("rateReplyDetails") or []

        if not details:
            raise FedExAPIError(
                {"message": "No rates available for this shipment", "alerts": output.get("alerts", [])}
            )

        rates = [parse_rate(detail) for detail in details]
        valid = [rate for rate in rates if rate["price"] > 0]

        if not valid:
            if self.is_production:
                logger.error("FedEx returned no priced rates in production")
                raise FedExAPIError(
                    "No rates available from FedEx. Please try again or contact support."
                )
            logger.warning("FedEx sandbox returned $0 rates, using estimates")
            valid = estimated_rates(rates, packages)

        valid.sort(key=lambda rate: rate["price"])
        return {
            "rates": valid,
            "currency": "USD",
            "from_warehouse": warehouse.name,
            "is_estimated": any(rate["is_estimated"] for rate in valid),
        }

    # ==================== Tracking ====================

    async def track(self, tracking_number: str) -> dict[str, Any]:
        """
        Track a shipment.

        In sandbox, missing or unauthorised tracking falls back to mock data.
        """
        tracking_number = tracking_number.strip()
        payload = {
            "includeDetailedScans": True,
            "trackingInfo": [{"trackingNumberInfo": {"trackingNumber": tracking_number}}],
        }

        try:
            result = await self.request("/track/v1/trackingnumbers", payload, track=True)
        except FedExAPIError as e:
            if self.is_production:
                raise
            if e.code == TRACK_NOT_AUTHORIZED:
                logger.warning("FedEx Track API not authorized, returning mock tracking")
            else:
                logger.warning(f"FedEx tracking failed in sandbox, returning mock tracking: {e}")
            return mock_tracking(tracking_number)

        complete = (result.get("output") or {}).get("completeTrackResults") or []
        track_results = complete[0].get("trackResults") if complete else None
        track_result = track_results[0] if track_results else None

        if not track_result or track_result.get("error"):
            message = ((track_result or {}).get("error") or {}).get("message") or "Tracking information not found"
            if self.is_production:
                raise FedExAPIError({"message": message, "tracking_number": tracking_number}, status_code=404)
            logger.info(f"Tracking {tracking_number} not found in sandbox, returning mock tracking")
            return mock_tracking(tracking_number)

        return parse_tracking(track_result, tracking_number)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"


def _has_error_code(body: Any, code: str) -> bool:
    if not isinstance(body, dict):
        return False
    return any(err.get("code") == code for err in body.get("errors") or [])


def _first_message(payload: Any) -> str | None:
    if isinstance(payload, dict):
        errors = payload.get("errors") or []
        if errors:
            return ", ".join(err.get("message", "") for err in errors)
        return payload.get("message")
    if isinstance(payload, str):
        return payload
    return None


def _manual_verification(error: str) -> dict[str, Any]:
    return {
        "success": False,
        "is_valid": False,
        "classification": "UNKNOWN",
        "is_residential": None,
        "normalized_address": None,
        "error": error,
        "messages": [error],
        "requires_manual_verification": True,
    }


# Singleton instance
_fedex_client: FedExClient | None = None


def get_fedex_client() -> FedExClient:
    """Get or create FedEx client singleton."""
    global _fedex_client
    if _fedex_client is None:
        _fedex_client = FedExClient()
    return _fedex_client
