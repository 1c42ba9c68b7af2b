"""
Order tracking for the chat widget.

Internal tracking numbers live in Supabase (``order_tracking`` plus the
``order_tracking_with_status`` view and ``order_status_history``). Carrier
numbers are looked up on the UPS tracking API, which also quotes shipping
rates.
"""

import base64
import time
from typing import Any, Optional

import httpx
from rich.console import Console

from config.settings import CarrierConfig
from lakay.errors import NotFoundError, ValidationError
from lakay.models import require_fields
from lakay.pricing import to_number

console = Console()


# =============================================================================
# Internal tracking (Supabase)
# =============================================================================


def track_order(store, tracking_number: str) -> dict:
    """
    Look up an internal tracking number (case-insensitive).

    Raises:
        NotFoundError: if no order carries that number
    """
    number = tracking_number.strip().upper()
    row = store.find_row("order_tracking_with_status", tracking_number=number)
    if row is None:
        raise NotFoundError(f"No order found for tracking number {number}")
    return row


def get_status_history(store, tracking_number: str) -> list[dict]:
    return store.list_rows(
        "order_status_history",
        filters={"tracking_number": tracking_number.strip().upper()},
        order_by="created_at",
    )


def create_tracking(store, data: dict) -> dict:
    require_fields(data, ["tracking_number", "customer_email", "customer_name"])
    row = {**data, "tracking_number": str(data["tracking_number"]).strip().upper()}
    return store.insert_row("order_tracking", row)


def update_status(
    store,
    tracking_number: str,
    status: str,
    status_message: Optional[str] = None,
    updated_by: Optional[str] = None,
) -> dict:
    """Set the current status and append a history entry."""
    if not status:
        raise ValidationError("Missing required fields", ["status"])
    number = tracking_number.strip().upper()
    store.update_where("order_tracking", {"order_status": status}, tracking_number=number)
    entry = {"tracking_number": number, "status": status}
    if status_message:
        entry["status_message"] = status_message
    if updated_by:
        entry["updated_by"] = updated_by
    return store.insert_row("order_status_history", entry)


# =============================================================================
# UPS
# =============================================================================


class CarrierError(Exception):
    """The carrier API could not be reached or refused the request."""


class UPSClient:
    """
    Async client for the UPS OAuth and Tracking APIs.

    Usage:
        async with UPSClient() as ups:
            result = await ups.track("1Z999AA10123456784")
    """

    def __init__(
        self,
        config: Optional[CarrierConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or CarrierConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            transport=self._transport, timeout=self.config.timeout_seconds
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    async def get_token(self) -> str:
        """Client-credentials OAuth token."""
        if not self.is_configured:
            raise CarrierError("UPS API credentials not configured")
        credentials = base64.b64encode(
            f"{self.config.client_id}:{self.config.client_secret}".encode()
        ).decode()
        response = await self._client.post(
            self.config.token_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": f"Basic {credentials}",
            },
            content="grant_type=client_credentials",
        )
        if response.status_code >= 400:
            console.print(f"[red]UPS OAuth error: {response.text}[/red]")
            raise CarrierError("Failed to get UPS access token")
        return response.json()["access_token"]

    async def track(self, tracking_number: str) -> dict:
        """
        Fetch tracking details.

        Returns:
            Dict with ``found`` and, when found, status, estimatedDelivery,
            carrier, shipment and events.

        Raises:
            CarrierError: on auth failure or a non-404 API error
        """
        token = await self.get_token()
        response = await self._client.get(
            f"{self.config.tracking_url}/{tracking_number}",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "transId": f"track-{int(time.time() * 1000)}",
                "transactionSrc": self.config.transaction_source,
            },
        )

        if response.status_code == 404:
            return {"found": False, "trackingNumber": tracking_number}
        if response.status_code >= 400:
            console.print(f"[red]UPS tracking error: {response.text}[/red]")
            raise CarrierError("Failed to fetch tracking information")

        return parse_ups_response(tracking_number, response.json())

    async def rate(
        self,
        to_zip: str,
        to_state: str,
        to_city: str = "",
        to_country: str = "US",
        weight: float = 2,
        service: str = "03",
    ) -> dict:
        """
        Quote one package (12 x 8 x 6 in) from the shop to the destination.

        Returns:
            Raw ``RateResponse`` JSON

        Raises:
            CarrierError: on auth failure or an API error
        """
        token = await self.get_token()
        origin = {
            "City": self.config.origin_city,
            "StateProvinceCode": self.config.origin_state,
            "PostalCode": self.config.origin_zip,
            "CountryCode": "US",
        }
        shipment = {
            "Shipper": {"Name": "Limen Lakay", "ShipperNumber": self.config.account_number, "Address": origin},
            "ShipTo": {
                "Name": "Customer",
                "Address": {
                    "City": to_city or "",
                    "StateProvinceCode": to_state,
                    "PostalCode": to_zip,
                    "CountryCode": to_country,
                },
            },
            "ShipFrom": {"Name": "Limen Lakay", "Address": origin},
            "Service": {"Code": service, "Description": SERVICE_NAMES.get(service, "UPS Next Day Air")},
            "Package": {
                "PackagingType": {"Code": "02", "Description": "Package"},
                "Dimensions": {
                    "UnitOfMeasurement": {"Code": "IN", "Description": "Inches"},
                    "Length": "12",
                    "Width": "8",
                    "Height": "6",
                },
                "PackageWeight": {
                    "UnitOfMeasurement": {"Code": "LBS", "Description": "Pounds"},
                    "Weight": str(weight),
                },
            },
        }
        response = await self._client.post(
            self.config.rating_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "transId": f"rate-{int(time.time() * 1000)}",
                "transactionSrc": self.config.transaction_source,
            },
            json={
                "RateRequest": {
                    "Request": {"TransactionReference": {"CustomerContext": "Rating Request"}},
                    "Shipment": shipment,
                }
            },
        )
        if response.status_code >= 400:
            console.print(f"[red]UPS rating error: {response.text}[/red]")
            raise CarrierError("Failed to fetch shipping rate")
        return response.json()


def parse_ups_response(tracking_number: str, data: dict) -> dict:
    shipments = (data.get("trackResponse") or {}).get("shipment") or []
    if not shipments:
        return {"found": False, "trackingNumber": tracking_number}
    shipment = shipments[0]
    package: dict[str, Any] = (shipment.get("package") or [{}])[0]
    activity = package.get("activity") or []

    events = []
    for act in activity:
        address = (act.get("location") or {}).get("address") or {}
        status = act.get("status") or {}
        events.append({
            "date": act.get("date"),
            "time": act.get("time"),
            "location": f"{address.get('city', '')}, {address.get('stateProvince', '')}".strip(),
            "status": status.get("description") or "Update",
            "description": status.get("statusCode") or "",
        })

    current = "In Transit"
    if activity:
        current = (activity[0].get("status") or {}).get("description") or current

    estimated = None
    delivery_dates = package.get("deliveryDate") or []
    if delivery_dates:
        start = (package.get("deliveryTime") or {}).get("startTime") or ""
        estimated = f"{delivery_dates[0].get('date', '')} {start}".strip()

    weight = package.get("weight") or {}
    return {
        "found": True,
        "trackingNumber": tracking_number,
        "status": current,
        "estimatedDelivery": estimated,
        "carrier": "UPS",
        "shipment": {
            "service": (shipment.get("service") or {}).get("description") or "UPS Ground",
            "weight": weight.get("weight"),
            "weightUnit": weight.get("unitOfMeasurement"),
        },
        "events": events,
    }


SERVICE_NAMES = {"03": "UPS Ground", "02": "UPS 2nd Day Air", "01": "UPS Next Day Air"}
SERVICE_DAYS = {"03": "3-5 business days", "02": "2 business days", "01": "1 business day"}


def fallback_quote(config: CarrierConfig, **extra: Any) -> dict:
    return {
        "success": False,
        "fallback": True,
        "cost": config.fallback_rate,
        "service": "Standard Shipping",
        **extra,
    }


def parse_rate_response(data: dict, config: CarrierConfig) -> dict:
    shipment = (data.get("RateResponse") or {}).get("RatedShipment")
    if isinstance(shipment, list):
        shipment = shipment[0] if shipment else None
    if not shipment:
        return fallback_quote(config)
    charges = shipment.get("TotalCharges") or {}
    code = (shipment.get("Service") or {}).get("Code")
    return {
        "success": True,
        "cost": to_number(charges.get("MonetaryValue") or config.fallback_rate),
        "currency": charges.get("CurrencyCode") or "USD",
        "service": SERVICE_NAMES.get(code, "UPS Next Day Air"),
        "estimatedDays": SERVICE_DAYS.get(code, "1 business day"),
    }


async def quote_shipping(data: dict, ups: Optional[UPSClient] = None) -> dict:
    """
    Shipping cost for a destination (toZip, toState, toCity, toCountry,
    weight in pounds, service code).

    Any carrier failure returns the flat fallback rate instead of raising.

    Raises:
        ValidationError: destination zip or state missing
    """
    require_fields(data, ["toZip", "toState"])
    ups = ups if ups is not None else UPSClient()
    try:
        async with ups as client:
            rated = await client.rate(
                data["toZip"],
                data["toState"],
                to_city=data.get("toCity") or "",
                to_country=data.get("toCountry") or "US",
                weight=to_number(data.get("weight")) or 2,
                service=str(data.get("service") or "03"),
            )
    except (CarrierError, httpx.HTTPError, ValueError) as e:
        console.print(f"[yellow]Warning: Using standard shipping rate: {e}[/yellow]")
        return fallback_quote(ups.config, message="Using standard rate")
    return parse_rate_response(rated, ups.config)


class OrderTracker:
    """Looks a number up internally first, then with the carrier."""

    def __init__(self, store=None, ups: Optional[UPSClient] = None):
        self.store = store
        self.ups = ups if ups is not None else UPSClient()

    async def lookup(self, tracking_number: str) -> dict:
        number = (tracking_number or "").strip()
        if not number:
            raise ValidationError("Missing required fields", ["tracking_number"])

        if self.store is not None:
            try:
                order = track_order(self.store, number)
                history = get_status_history(self.store, number)
                return {
                    "found": True,
                    "source": "internal",
                    "trackingNumber": number.upper(),
                    "order": order,
                    "history": history,
                }
            except NotFoundError:
                pass

        if self.ups.is_configured:
            try:
                async with self.ups as ups:
                    result = await ups.track(number)
            except (CarrierError, httpx.HTTPError) as e:
                console.print(f"[yellow]Warning: Carrier lookup failed: {e}[/yellow]")
            else:
                if result.get("found"):
                    return {**result, "source": "carrier"}

        return {"found": False, "trackingNumber": number}
