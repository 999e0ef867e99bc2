"""
FedEx configuration.

Credentials per environment, ship-from warehouses, the service catalogue
and the mapping from storefront shipping methods to FedEx service types.
"""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from artgallery.core.config import Settings, settings

SANDBOX_API_URL = "https://apis-sandbox.fedex.com"
PRODUCTION_API_URL = "https://apis.fedex.com"


@dataclass
class FedExCredentials:
    client_id: str
    client_secret: str
    account_number: str
    track_client_id: str = ""
    track_client_secret: str = ""

    @property
    def track(self) -> tuple[str, str]:
        """Tracking credentials, falling back to the main project."""
        return (
            self.track_client_id or self.client_id,
            self.track_client_secret or self.client_secret,
        )


@dataclass
class Warehouse:
    name: str
    street_lines: list[str]
    city: str
    state_code: str
    postal_code: str
    phone_number: str
    country_code: str = "US"

    def to_fedex_address(self) -> dict[str, Any]:
        return {
            "streetLines": self.street_lines,
            "city": self.city,
            "stateOrProvinceCode": self.state_code,
            "postalCode": self.postal_code,
            "countryCode": self.country_code,
        }


@dataclass
class ServiceInfo:
    code: str
    name: str
    transit_days: str
    description: str
    priority: int = 99


WAREHOUSES = {
    "PRIMARY": Warehouse(
        name="Main Warehouse",
        street_lines=["10 FedEx Pkwy"],
        city="Collierville",
        state_code="TN",
        postal_code="38017",
        phone_number="9012600000",
    ),
    "WEST": Warehouse(
        name="West Coast Warehouse",
        street_lines=["1234 Art Avenue"],
        city="Los Angeles",
        state_code="CA",
        postal_code="90001",
        phone_number="3105551234",
    ),
}

STATE_REGIONS = {
    "EAST": frozenset(
        {
            "ME", "NH", "VT", "MA", "RI", "CT", "NY", "NJ", "PA", "DE", "MD",
            "VA", "WV", "NC", "SC", "GA", "FL", "DC", "OH", "MI", "IN", "KY",
            "TN", "AL", "MS",
        }
    ),
    "WEST": frozenset(
        {"WA", "OR", "CA", "NV", "AZ", "UT", "ID", "MT", "WY", "CO", "NM", "AK", "HI"}
    ),
    "CENTRAL": frozenset(
        {"ND", "SD", "NE", "KS", "MN", "IA", "MO", "WI", "IL", "OK", "TX", "AR", "LA"}
    ),
}

SERVICE_TYPES = {
    info.code: info
    for info in (
        ServiceInfo("FEDEX_GROUND", "FedEx Ground", "1-5", "Cost-effective ground shipping", 1),
        ServiceInfo("GROUND_HOME_DELIVERY", "FedEx Home Delivery", "1-5", "Residential ground delivery", 2),
        ServiceInfo("FEDEX_EXPRESS_SAVER", "FedEx Express Saver", "3", "3 business day delivery", 3),
        ServiceInfo("FEDEX_2_DAY", "FedEx 2Day", "2", "2 business day delivery", 4),
        ServiceInfo("FEDEX_2_DAY_AM", "FedEx 2Day A.M.", "2", "2 business day delivery by 10:30 AM", 5),
        ServiceInfo("STANDARD_OVERNIGHT", "FedEx Standard Overnight", "1", "Next business day by 3:00 PM", 6),
        ServiceInfo("PRIORITY_OVERNIGHT", "FedEx Priority Overnight", "1", "Next business day by 10:30 AM", 7),
        ServiceInfo("FIRST_OVERNIGHT", "FedEx First Overnight", "1", "Next business day by 8:00 AM", 8),
    )
}

SHIPPING_METHOD_TO_SERVICE = {
    "ground": "FEDEX_GROUND",
    "home_delivery": "GROUND_HOME_DELIVERY",
    "express_saver": "FEDEX_EXPRESS_SAVER",
    "2_day": "FEDEX_2_DAY",
    "2_day_am": "FEDEX_2_DAY_AM",
    "overnight": "STANDARD_OVERNIGHT",
    "priority_overnight": "PRIORITY_OVERNIGHT",
    "first_overnight": "FIRST_OVERNIGHT",
}


@dataclass
class FedExConfig:
    """Resolved FedEx configuration for the active environment."""

    environment: str
    sandbox: FedExCredentials
    production: FedExCredentials
    timeout: float = 30.0
    warehouses: dict[str, Warehouse] = field(default_factory=lambda: dict(WAREHOUSES))

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "FedExConfig":
        environment = app_settings.fedex_environment or (
            "production" if app_settings.is_production else "sandbox"
        )
        return cls(
            environment=environment.lower(),
            sandbox=FedExCredentials(
                client_id=app_settings.fedex_api_key,
                client_secret=app_settings.fedex_secret_key,
                account_number=app_settings.fedex_account_number,
                track_client_id=app_settings.fedex_track_api_key,
                track_client_secret=app_settings.fedex_track_secret_key,
            ),
            production=FedExCredentials(
                client_id=app_settings.fedex_prod_api_key,
                client_secret=app_settings.fedex_prod_secret_key,
                account_number=app_settings.fedex_prod_account_number,
                track_client_id=app_settings.fedex_prod_track_api_key,
                track_client_secret=app_settings.fedex_prod_track_secret_key,
            ),
            timeout=app_settings.fedex_timeout,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def base_url(self) -> str:
        return PRODUCTION_API_URL if self.is_production else SANDBOX_API_URL

    @property
    def credentials(self) -> FedExCredentials:
        if self.environment not in ("production", "sandbox"):
            logger.error(
                f"Invalid FedEx environment {self.environment}, falling back to sandbox"
            )
        return self.production if self.is_production else self.sandbox

    def get_warehouse(self, destination_state: str | None) -> Warehouse:
        """Ship from the west coast for western states, otherwise from the primary warehouse."""
        state = (destination_state or "").strip().upper()
        if state in STATE_REGIONS["WEST"]:
            return self.warehouses["WEST"]
        return self.warehouses["PRIMARY"]

    def validate(self) -> dict[str, Any]:
        """Report missing or suspicious configuration."""
        creds = self.credentials
        errors: list[str] = []
        warnings: list[str] = []

        if not creds.client_id:
            errors.append("FedEx Client ID is not configured")
        if not creds.client_secret:
            errors.append("FedEx Client Secret is not configured")
        if not creds.account_number:
            errors.append("FedEx Account Number is not configured")

        if not creds.track_client_id and not creds.client_id:
            warnings.append(
                "FedEx Track API credentials not configured - tracking may not work"
            )

        if self.is_production and "sandbox" in creds.client_id.lower():
            warnings.append("Client ID appears to be a sandbox credential")

        return {
            "is_valid": not errors,
            "environment": self.environment,
            "base_url": self.base_url,
            "separate_track_credentials": bool(
                creds.track_client_id and creds.track_client_secret
            ),
            "errors": errors,
            "warnings": warnings,
        }


def get_service_type(shipping_method: str, is_residential: bool = True) -> str:
    """FedEx service for a storefront shipping method."""
    service_type = SHIPPING_METHOD_TO_SERVICE.get(shipping_method, "FEDEX_GROUND")
    if service_type == "FEDEX_GROUND" and is_residential:
        return "GROUND_HOME_DELIVERY"
    return service_type


def get_service_info(service_type: str) -> ServiceInfo:
    info = SERVICE_TYPES.get(service_type)
    if info:
        return info
    return ServiceInfo(
        code=service_type,
        name=service_type.replace("_", " "),
        transit_days="3-5",
        description="FedEx Shipping",
    )


def get_fedex_config() -> FedExConfig:
    return FedExConfig.from_settings(settings)
