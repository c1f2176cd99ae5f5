"""HTTP client for the DESCO prepaid customer API.

Every fetch performs a single GET against ``settings.DESCO_BASE_URL`` and
unwraps the provider envelope ``{code, desc, data}``. Transport errors,
timeouts, non-2xx responses, non-JSON bodies and envelopes without ``data``
are logged and reported as "no data" (``None`` or ``[]``); they never raise.

Provider keys are mapped onto canonical field names by the ``*_FIELDS``
tables below. Keys are compared after lower-casing and removing underscores,
so ``accountNo``, ``AccountNo`` and ``account_no`` all match ``accountno``.
When several aliases of one field are present, the first one in the payload
wins. Unknown keys are dropped.

A record that fails validation (for example an unparseable date) is skipped
and logged; the remaining records of the same response are kept.
"""

import logging
from collections.abc import Iterator
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from desco_report.core.config import settings
from desco_report.schemas.provider import (
    ProviderBalance,
    ProviderDailyConsumption,
    ProviderEnvelope,
    ProviderEvent,
    ProviderLocation,
    ProviderMonthlyConsumption,
    ProviderRecharge,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

BALANCE_PATH = "/api/tkdes/customer/getBalance"
DAILY_CONSUMPTION_PATH = "/api/tkdes/customer/getCustomerDailyConsumption"
MONTHLY_CONSUMPTION_PATH = "/api/tkdes/customer/getCustomerMonthlyConsumption"
RECHARGE_HISTORY_PATH = "/api/tkdes/customer/getRechargeHistory"
RECENT_EVENTS_PATH = "/api/complaint/push-notification/getRecentEvent"
LOCATION_PATH = "/api/common/getCustomerLocation"

BALANCE_FIELDS = {
    "accountno": "account_no",
    "accountnumber": "account_no",
    "meterno": "meter_no",
    "meternumber": "meter_no",
    "balance": "balance",
    "currentbalance": "balance",
    "currentmonthconsumption": "current_month_consumption",
    "readingtime": "reading_time",
    "readtime": "reading_time",
}

DAILY_CONSUMPTION_FIELDS = {
    "date": "date",
    "consumptiondate": "date",
    "consumption": "consumption_value",
    "consumptionvalue": "consumption_value",
    "unit": "unit",
    "cost": "cost",
}

MONTHLY_CONSUMPTION_FIELDS = {
    "year": "year",
    "month": "month",
    "consumption": "consumption_value",
    "consumptionvalue": "consumption_value",
    "unit": "unit",
    "cost": "cost",
    "averagedailyconsumption": "average_daily_consumption",
}

RECHARGE_FIELDS = {
    "rechargedate": "recharge_date",
    "amount": "amount",
    "rechargeamount": "amount",
    "transactionid": "transaction_id",
    "paymentmethod": "payment_method",
    "notes": "notes",
    "status": "status",
}

EVENT_FIELDS = {
    "eventdate": "event_date",
    "eventtype": "event_type",
    "message": "message",
    "category": "category",
    "priority": "priority",
}

LOCATION_FIELDS = {
    "division": "division",
    "district": "district",
    "thana": "thana",
    "area": "area",
    "postcode": "post_code",
    "fulladdress": "full_address",
    "latitude": "latitude",
    "longitude": "longitude",
}


def normalize_fields(raw: dict[str, Any], field_map: dict[str, str]) -> dict[str, Any]:
    """Rename provider keys to canonical field names using ``field_map``."""
    normalized: dict[str, Any] = {}
    for key, value in raw.items():
        target = field_map.get(key.replace("_", "").lower())
        if target is not None and target not in normalized:
            normalized[target] = value
    return normalized


class DescoClient:
    """Typed wrapper around the provider endpoints."""

    def __init__(self, http: httpx.Client) -> None:
        self._http = http

    def close(self) -> None:
        self._http.close()

    def _get_data(self, path: str, params: dict[str, str], category: str) -> Any | None:
        """Issue the GET and return the envelope's ``data``, or None."""
        account_no = params.get("accountNo")
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.warning(
                "Failed to fetch %s for account %s: %s", category, account_no, exc
            )
            return None

        if not response.is_success:
            logger.warning(
                "Failed to fetch %s for account %s: %s",
                category,
                account_no,
                response.status_code,
            )
            return None

        try:
            envelope = ProviderEnvelope.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.warning("Invalid response format for %s of account %s", category, account_no)
            return None

        if envelope.data is None:
            logger.warning(
                "No %s data for account %s (code=%s, desc=%s)",
                category,
                account_no,
                envelope.code,
                envelope.desc,
            )
            return None

        if envelope.code != 0:
            logger.info(
                "Provider returned code %s with %s data for account %s",
                envelope.code,
                category,
                account_no,
            )
        return envelope.data

    def _parse_records(
        self,
        data: Any,
        model: type[ModelT],
        field_map: dict[str, str],
        category: str,
        account_no: str,
    ) -> list[ModelT]:
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            logger.warning("Invalid %s payload for account %s", category, account_no)
            return []

        records: list[ModelT] = []
        for item in data:
            if not isinstance(item, dict):
                logger.warning("Skipping non-object %s record for account %s", category, account_no)
                continue
            try:
                records.append(model.model_validate(normalize_fields(item, field_map)))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed %s record for account %s: %s",
                    category,
                    account_no,
                    exc.errors(include_url=False),
                )
        return records

    def fetch_balance(self, account_no: str, meter_no: str) -> ProviderBalance | None:
        """Fetch the balance snapshot, or None if the provider has no data."""
        data = self._get_data(
            BALANCE_PATH, {"accountNo": account_no, "meterNo": meter_no}, "balance"
        )
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Invalid balance payload for account %s", account_no)
            return None

        try:
            balance = ProviderBalance.model_validate(normalize_fields(data, BALANCE_FIELDS))
        except ValidationError as exc:
            logger.warning(
                "Malformed balance for account %s: %s",
                account_no,
                exc.errors(include_url=False),
            )
            return None

        balance.account_no = balance.account_no or account_no
        balance.meter_no = balance.meter_no or meter_no
        return balance

    def fetch_daily_consumption(
        self, account_no: str, meter_no: str, date_from: date, date_to: date
    ) -> list[ProviderDailyConsumption]:
        """Fetch daily consumption for an inclusive date range."""
        params = {
            "accountNo": account_no,
            "meterNo": meter_no,
            "dateFrom": date_from.strftime("%Y-%m-%d"),
            "dateTo": date_to.strftime("%Y-%m-%d"),
        }
        data = self._get_data(DAILY_CONSUMPTION_PATH, params, "daily consumption")
        if data is None:
            return []
        return self._parse_records(
            data, ProviderDailyConsumption, DAILY_CONSUMPTION_FIELDS, "daily consumption", account_no
        )

    def fetch_monthly_consumption(
        self, account_no: str, meter_no: str, month_from: date, month_to: date
    ) -> list[ProviderMonthlyConsumption]:
        """Fetch monthly consumption; only the year and month of the bounds are used."""
        params = {
            "accountNo": account_no,
            "meterNo": meter_no,
            "monthFrom": month_from.strftime("%Y-%m"),
            "monthTo": month_to.strftime("%Y-%m"),
        }
        data = self._get_data(MONTHLY_CONSUMPTION_PATH, params, "monthly consumption")
        if data is None:
            return []
        return self._parse_records(
            data,
            ProviderMonthlyConsumption,
            MONTHLY_CONSUMPTION_FIELDS,
            "monthly consumption",
            account_no,
        )

    def fetch_recharge_history(
        self, account_no: str, meter_no: str, date_from: date, date_to: date
    ) -> list[ProviderRecharge]:
        """Fetch recharge transactions for an inclusive date range."""
        params = {
            "accountNo": account_no,
            "meterNo": meter_no,
            "dateFrom": date_from.strftime("%Y-%m-%d"),
            "dateTo": date_to.strftime("%Y-%m-%d"),
        }
        data = self._get_data(RECHARGE_HISTORY_PATH, params, "recharge history")
        if data is None:
            return []
        return self._parse_records(
            data, ProviderRecharge, RECHARGE_FIELDS, "recharge history", account_no
        )

    def fetch_recent_events(self, account_no: str) -> list[ProviderEvent]:
        """Fetch recent notifications for an account."""
        data = self._get_data(RECENT_EVENTS_PATH, {"accountNo": account_no}, "recent events")
        if data is None:
            return []
        return self._parse_records(data, ProviderEvent, EVENT_FIELDS, "recent events", account_no)

    def fetch_location(self, account_no: str) -> list[ProviderLocation]:
        """Fetch the customer's location records."""
        data = self._get_data(LOCATION_PATH, {"accountNo": account_no}, "location")
        if data is None:
            return []
        return self._parse_records(data, ProviderLocation, LOCATION_FIELDS, "location", account_no)


def build_desco_client(transport: httpx.BaseTransport | None = None) -> DescoClient:
    """Create a client configured from settings."""
    http = httpx.Client(
        base_url=settings.DESCO_BASE_URL,
        timeout=httpx.Timeout(settings.DESCO_TIMEOUT_SECONDS),
        headers={
            "Accept": "application/json",
            "User-Agent": settings.DESCO_USER_AGENT,
        },
        transport=transport,
    )
    return DescoClient(http)


def get_desco_client() -> Iterator[DescoClient]:
    """Dependency for getting a provider client."""
    client = build_desco_client()
    try:
        yield client
    finally:
        client.close()
