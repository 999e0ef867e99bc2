"""
FedEx request building and response parsing.

FedEx responses differ by account type and environment: rates can come back
as ACCOUNT or LIST quotes, with the total in one of several places. These
helpers normalise them into plain dicts for the storefront.
"""

import math
from datetime import datetime, timedelta
from typing import Any

from artgallery.modules.fedex.config import get_service_info

MAX_PACKAGE_WEIGHT = 50  # lbs per split package
MIN_WEIGHT, MAX_WEIGHT = 1, 150
MAX_LENGTH, MAX_WIDTH, MAX_HEIGHT = 119, 119, 70
DEFAULT_PACKAGE = {"weight": 5, "length": 12, "width": 12, "height": 6}
DEFAULT_INSURED_VALUE = 100

ACCOUNT_RATE_TYPES = ("ACCOUNT", "PAYOR_ACCOUNT_PACKAGE", "PAYOR_ACCOUNT_SHIPMENT")
LIST_RATE_TYPES = ("LIST", "PAYOR_LIST_PACKAGE", "PAYOR_LIST_SHIPMENT")

INVALID_ADDRESS_CODES = frozenset(
    {
        "UNABLE.TO.MATCH",
        "INVALID.STATE.CODE",
        "INVALID.POSTAL.CODE",
        "MISSING.APARTMENT.NUMBER",
        "INVALID.CITY",
        "INVALID.ADDRESS",
    }
)

TRANSIT_TIME_DAYS = {
    "ONE_DAY": 1,
    "TWO_DAYS": 2,
    "THREE_DAYS": 3,
    "FOUR_DAYS": 4,
    "FIVE_DAYS": 5,
    "SIX_DAYS": 6,
    "SEVEN_DAYS": 7,
    "EIGHT_DAYS": 8,
    "NINE_DAYS": 9,
    "TEN_DAYS": 10,
}

# Sandbox estimates per service, scaled by shipment weight
ESTIMATED_PRICES = {
    "FIRST_OVERNIGHT": 75.0,
    "PRIORITY_OVERNIGHT": 55.0,
    "STANDARD_OVERNIGHT": 45.0,
    "FEDEX_2_DAY_AM": 35.0,
    "FEDEX_2_DAY": 28.0,
    "FEDEX_EXPRESS_SAVER": 22.0,
    "GROUND_HOME_DELIVERY": 15.0,
    "FEDEX_HOME_DELIVERY": 15.0,
    "FEDEX_GROUND": 12.0,
}
DEFAULT_ESTIMATED_PRICE = 25.0

FEDEX_TO_ORDER_STATUS = {
    "OD": "out_for_delivery",
    "DL": "delivered",
    "CA": "cancelled",
    "RS": "returned",
}

STATUS_DESCRIPTIONS = {
    "PU": "Package picked up",
    "OC": "Shipment information sent to FedEx",
    "IT": "In transit",
    "IX": "In transit - potential delay",
    "DP": "Departed FedEx location",
    "AR": "Arrived at FedEx location",
    "AD": "At local FedEx facility",
    "OF": "At FedEx origin facility",
    "FD": "At FedEx destination facility",
    "OD": "On FedEx vehicle for delivery",
    "DL": "Delivered",
    "DE": "Delivery exception",
    "CA": "Shipment cancelled",
    "RS": "Returning to shipper",
    "HL": "Held at FedEx location",
    "SE": "Shipment exception",
}

EVENT_DESCRIPTIONS = {
    "PU": "Picked up",
    "OC": "Shipment information received",
    "IT": "In transit to destination",
    "DP": "Departed facility",
    "AR": "Arrived at facility",
    "OD": "Out for delivery",
    "DL": "Delivered",
    "DE": "Delivery exception occurred",
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _amount(node: Any) -> float:
    """Read ``{"amount": ...}`` nodes, returning 0 when absent."""
    if isinstance(node, dict) and node.get("amount"):
        return float(node["amount"])
    return 0.0


# ==================== Requests ====================


def build_package_line_items(packages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Turn storefront packages into FedEx line items.

    Packages over 50 lb are split into equal parts; weights and dimensions
    are clamped to FedEx parcel limits.
    """
    line_items = []
    for pkg in packages:
        total_weight = _clamp(pkg.get("weight") or DEFAULT_PACKAGE["weight"], MIN_WEIGHT, MAX_WEIGHT)
        length = math.ceil(pkg.get("length") or DEFAULT_PACKAGE["length"])
        width = math.ceil(pkg.get("width") or DEFAULT_PACKAGE["width"])
        height = math.ceil(pkg.get("height") or DEFAULT_PACKAGE["height"])

        split_count = math.ceil(total_weight / MAX_PACKAGE_WEIGHT) if total_weight > MAX_PACKAGE_WEIGHT else 1
        part_weight = math.ceil(total_weight / split_count)

        for _ in range(split_count):
            line_items.append(
                {
                    "subPackagingType": "BOX",
                    "groupPackageCount": 1,
                    "weight": {
                        "value": int(_clamp(part_weight, MIN_WEIGHT, MAX_WEIGHT)),
                        "units": "LB",
                    },
                    "dimensions": {
                        "length": int(_clamp(length, 1, MAX_LENGTH)),
                        "width": int(_clamp(width, 1, MAX_WIDTH)),
                        "height": int(_clamp(height, 1, MAX_HEIGHT)),
                        "units": "IN",
                    },
                }
            )
    return line_items


def total_insured_value(packages: list[dict[str, Any]]) -> float:
    return sum(pkg.get("insured_value") or DEFAULT_INSURED_VALUE for pkg in packages)


def destination_address(destination: dict[str, Any]) -> dict[str, Any]:
    """FedEx recipient address from a storefront address dict."""
    street_lines = [
        line.strip()
        for line in (destination.get("street_line1"), destination.get("street_line2"))
        if line and line.strip()
    ]
    return {
        "streetLines": street_lines or ["Address"],
        "city": (destination.get("city") or "").strip(),
        "stateOrProvinceCode": (destination.get("state_code") or "").strip().upper(),
        "postalCode": (destination.get("zip_code") or "").strip(),
        "countryCode": "US",
        "residential": destination.get("is_residential", True) is not False,
    }


# ==================== Rates ====================


def extract_price(rate: dict[str, Any]) -> dict[str, Any]:
    """
    Find the charge in a rate reply, preferring account rates over list rates.

    Tries totalNetCharge, totalNetFedExCharge, the shipment rate detail, the
    sum over rated packages and finally base + surcharges - discounts.
    """
    result = {
        "total": 0.0,
        "base": 0.0,
        "surcharges": 0.0,
        "discounts": 0.0,
        "currency": "USD",
        "rate_type": "LIST",
    }
    details = rate.get("ratedShipmentDetails") or []
    if not details:
        return result

    account = next((d for d in details if d.get("rateType") in ACCOUNT_RATE_TYPES), None)
    listed = next((d for d in details if d.get("rateType") in LIST_RATE_TYPES), None)
    rated = account or listed or details[0]
    result["rate_type"] = rated.get("rateType") or "LIST"

    total = 0.0
    for key in ("totalNetCharge", "totalNetFedExCharge"):
        if not total and _amount(rated.get(key)):
            total = _amount(rated[key])
            result["currency"] = rated[key].get("currency") or "USD"

    srd = rated.get("shipmentRateDetail")
    if srd:
        for key in ("totalNetCharge", "totalNetFedExCharge"):
            if _amount(srd.get(key)):
                total = _amount(srd[key])
                result["currency"] = srd[key].get("currency") or "USD"
                break
        result["base"] = _amount(srd.get("totalBaseCharge"))
        result["surcharges"] = _amount(srd.get("totalSurcharges"))
        result["discounts"] = _amount(srd.get("totalDiscounts"))

    if not total:
        for pkg in rated.get("ratedPackages") or []:
            detail = pkg.get("packageRateDetail") or {}
            total += _amount(detail.get("netCharge")) or _amount(detail.get("netFedExCharge"))

    if not total and (result["base"] or result["surcharges"] or result["discounts"]):
        total = result["base"] + result["surcharges"] - result["discounts"]

    result["total"] = total
    return result


def parse_transit_days(commit: dict[str, Any] | None) -> int | None:
    """Transit days from a number, a numeric string or a FedEx enum name."""
    if not commit:
        return None

    transit = commit.get("transitDays")
    if isinstance(transit, bool):
        transit = None
    if isinstance(transit, int):
        return transit
    if isinstance(transit, str):
        try:
            return int(transit)
        except ValueError:
            pass
    if isinstance(transit, dict):
        mapped = TRANSIT_TIME_DAYS.get(transit.get("minimumTransitTime", ""))
        if mapped:
            return mapped
        if transit.get("value"):
            try:
                return int(transit["value"])
            except (TypeError, ValueError):
                pass

    if commit.get("transitTime"):
        return TRANSIT_TIME_DAYS.get(commit["transitTime"])

    return None


def parse_delivery_date(rate: dict[str, Any]) -> str | None:
    commit = rate.get("commit") or {}
    operational = rate.get("operationalDetail") or {}

    if (commit.get("dateDetail") or {}).get("dayFormat"):
        return commit["dateDetail"]["dayFormat"]
    if commit.get("commitDates"):
        return commit["commitDates"][0]
    return operational.get("deliveryDate") or operational.get("commitDate")


def parse_rate(rate: dict[str, Any]) -> dict[str, Any]:
    """Normalise one rate reply detail."""
    price = extract_price(rate)
    service_type = rate.get("serviceType", "")
    return {
        "service_type": service_type,
        "service_name": rate.get("serviceName") or get_service_info(service_type).name,
        "price": round(price["total"], 2),
        "currency": price["currency"],
        "base_charge": price["base"],
        "surcharges": price["surcharges"],
        "discounts": price["discounts"],
        "rate_type": price["rate_type"],
        "transit_days": parse_transit_days(rate.get("commit")),
        "delivery_date": parse_delivery_date(rate),
        "is_estimated": False,
    }


def estimated_rates(
    rates: list[dict[str, Any]],
    packages: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Sandbox stand-in prices for quotes that came back at zero."""
    total_weight = sum(pkg.get("weight") or DEFAULT_PACKAGE["weight"] for pkg in packages)
    multiplier = max(1, total_weight / 10)

    estimated = []
    for rate in rates:
        price = ESTIMATED_PRICES.get(rate["service_type"], DEFAULT_ESTIMATED_PRICE) * multiplier
        estimated.append({**rate, "price": round(price, 2), "is_estimated": True})
    return estimated


# ==================== Address validation ====================


def parse_address_resolution(
    resolved: dict[str, Any],
    submitted: dict[str, Any],
) -> dict[str, Any]:
    """Interpret one resolved address from the address validation API."""
    attributes = resolved.get("attributes") or {}
    messages = resolved.get("customerMessages") or []

    has_errors = any(msg.get("code") in INVALID_ADDRESS_CODES for msg in messages)
    is_invalid = resolved.get("state") in ("INVALID", "UNABLE_TO_MATCH")

    if attributes.get("Residential") == "true" or attributes.get("ResidentialDeliveryIndicator") == "Y":
        classification = "RESIDENTIAL"
    elif attributes.get("Business") == "true" or attributes.get("ResidentialDeliveryIndicator") == "N":
        classification = "BUSINESS"
    else:
        classification = "UNKNOWN"

    normalized = None
    effective = resolved.get("effectiveAddress")
    if effective:
        normalized = {
            "street_lines": effective.get("streetLines") or submitted["streetLines"],
            "city": effective.get("city") or submitted["city"],
            "state_code": effective.get("stateOrProvinceCode") or submitted["stateOrProvinceCode"],
            "zip_code": effective.get("postalCode") or submitted["postalCode"],
            "country_code": "US",
        }

    is_valid = not has_errors and not is_invalid
    return {
        "success": True,
        "is_valid": is_valid,
        "classification": classification,
        "is_residential": classification == "RESIDENTIAL",
        "normalized_address": normalized,
        "messages": [msg.get("message") or msg.get("code") for msg in messages],
        "requires_manual_verification": not is_valid,
    }


# ==================== Tracking ====================


def map_fedex_status(code: str | None) -> str:
    """Order status implied by a FedEx status code."""
    return FEDEX_TO_ORDER_STATUS.get(code or "", "shipped")


def format_location(location: Any) -> str | None:
    if not location:
        return None
    if isinstance(location, str):
        return location

    parts = [
        location.get("city"),
        location.get("stateOrProvinceCode"),
        location.get("postalCode"),
    ]
    country = location.get("countryCode")
    if country and country != "US":
        parts.append(country)
    return ", ".join(p for p in parts if p) or None


def parse_tracking(track_result: dict[str, Any], tracking_number: str) -> dict[str, Any]:
    latest = track_result.get("latestStatusDetail") or {}
    code = latest.get("code")

    window = track_result.get("estimatedDeliveryTimeWindow")
    estimated_delivery = None
    if window:
        estimated_delivery = {
            "begins": (window.get("window") or {}).get("begins"),
            "ends": (window.get("window") or {}).get("ends"),
            "type": window.get("type"),
        }

    delivery = track_result.get("actualDeliveryDetail") or {}
    events = [
        {
            "timestamp": scan.get("date"),
            "event_type": scan.get("eventType"),
            "description": scan.get("eventDescription")
            or EVENT_DESCRIPTIONS.get(scan.get("eventType"), scan.get("eventType")),
            "derived_status": scan.get("derivedStatus"),
            "exception_description": scan.get("exceptionDescription"),
            "location": format_location(scan.get("scanLocation")),
        }
        for scan in track_result.get("scanEvents") or []
    ]

    return {
        "success": True,
        "tracking_number": tracking_number,
        "status_code": code,
        "order_status": map_fedex_status(code),
        "current_status": {
            "code": code,
            "description": latest.get("description") or STATUS_DESCRIPTIONS.get(code, "Status update"),
            "location": format_location(latest.get("scanLocation")),
            "timestamp": latest.get("date") or datetime.utcnow().isoformat(),
        },
        "estimated_delivery": estimated_delivery,
        "delivery_details": {
            "actual_delivery": delivery.get("actualDeliveryTimestamp"),
            "signed_by": delivery.get("signedByName"),
            "attempts": track_result.get("numberOfDeliveryAttempts"),
        },
        "events": events,
        "is_mock": False,
    }


def mock_tracking(tracking_number: str, now: datetime | None = None) -> dict[str, Any]:
    """Plausible in-transit tracking history for sandbox testing."""
    now = now or datetime.utcnow()

    def at(hours: int) -> str:
        return (now + timedelta(hours=hours)).isoformat()

    events = [
        {
            "timestamp": at(-24),
            "event_type": "IT",
            "description": EVENT_DESCRIPTIONS["IT"],
            "derived_status": "In transit",
            "exception_description": None,
            "location": "Memphis, TN, 38118",
        },
        {
            "timestamp": at(-48),
            "event_type": "DP",
            "description": EVENT_DESCRIPTIONS["DP"],
            "derived_status": "In transit",
            "exception_description": None,
            "location": "Collierville, TN, 38017",
        },
        {
            "timestamp": at(-72),
            "event_type": "PU",
            "description": EVENT_DESCRIPTIONS["PU"],
            "derived_status": "Picked up",
            "exception_description": None,
            "location": "Collierville, TN, 38017",
        },
    ]
    return {
        "success": True,
        "tracking_number": tracking_number,
        "status_code": "IT",
        "order_status": map_fedex_status("IT"),
        "current_status": {
            "code": "IT",
            "description": STATUS_DESCRIPTIONS["IT"],
            "location": "Memphis, TN, 38118",
            "timestamp": at(-24),
        },
        "estimated_delivery": {"begins": at(24), "ends": at(24), "type": "ESTIMATED"},
        "delivery_details": {"actual_delivery": None, "signed_by": None, "attempts": 0},
        "events": events,
        "is_mock": True,
    }
