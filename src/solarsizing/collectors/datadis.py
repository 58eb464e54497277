"""Datadis consumption importer: CSV exports and the private REST API.

CSV format (semicolon separated, header row):
    CUPS;Fecha;Hora;Consumo;Metodo obtencion
    ES0021000000000000AA;2023/03/15;01:00;0,312;Real

The API returns the same fields as JSON objects:
    {"cups": "...", "date": "2023/03/15", "time": "01:00",
     "consumptionKWh": 0.312, "obtainMethod": "Real"}

Hours are "HH:MM" labels of the hour ending at that time (01:00..24:00).
Credentials are read from DATADIS_USER / DATADIS_PASSWORD.
"""

import csv
import logging
import os
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

import httpx
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .. import dates
from ..cache import TTLCache
from ..errors import ConfigError, MalformedInputError, SolarSizingError
from ..loadcurve import correct_repeated_dst_hour, normalize_readings
from ..models import LoadCurve, RawReading
from ..validators import parse_number

logger = logging.getLogger(__name__)

SOURCE_NAME = "datadis"
DELIMITER = ";"
DATADIS_LOGIN_URL = "https://datadis.es/nikola-auth/tokens/login"
DATADIS_API_BASE = "https://datadis.es/api-private/api"
CUPS_PREFIX_LENGTH = 20
TOKEN_TTL = 3600.0


class DatadisError(SolarSizingError):
    """Error talking to the Datadis API."""

    pass


def get_credentials() -> tuple[str, str]:
    """Get Datadis user and password from environment."""
    user = os.environ.get("DATADIS_USER")
    password = os.environ.get("DATADIS_PASSWORD")
    if not user or not password:
        raise ConfigError(
            "DATADIS_USER and DATADIS_PASSWORD environment variables not set.\n"
            "Use the credentials of your datadis.es account, e.g. in a .env file."
        )
    return user, password


def _parse(day_text: str, time_text: str, value_text, row_number) -> RawReading:
    try:
        year, month, day = (int(part) for part in day_text.strip().split("/"))
        hour = int(time_text.strip()[:2])
        value = parse_number(value_text, "consumption")
    except (IndexError, ValueError) as e:
        raise MalformedInputError(f"{SOURCE_NAME} row {row_number}: {e}") from None
    return RawReading(date=dates.hour_ending(date(year, month, day), hour), value=value)


def parse_row(row: list[str], row_number: int = 0) -> RawReading:
    if len(row) < 4:
        raise MalformedInputError(f"{SOURCE_NAME} row {row_number}: expected 4 columns, got {len(row)}")
    reading = _parse(row[1], row[2], row[3], row_number)
    if len(row) > 4:
        reading.comment = row[4].strip()
    return reading


def parse_rows(rows: Iterable[list[str]]) -> list[RawReading]:
    return [parse_row(row, n) for n, row in enumerate(rows, start=2) if any(c.strip() for c in row)]


def parse_csv(csv_path: Path) -> list[RawReading]:
    """Parse a Datadis CSV export file."""
    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f, delimiter=DELIMITER)
        next(reader, None)
        return parse_rows(reader)


def parse_api_entries(entries: Iterable[dict[str, Any]]) -> list[RawReading]:
    """Parse the JSON entries of a get-consumption-data response."""
    readings = []
    for n, entry in enumerate(entries, start=1):
        try:
            day_text, time_text = entry["date"], entry["time"]
            value = entry["consumptionKWh"]
        except (KeyError, TypeError):
            raise MalformedInputError(f"{SOURCE_NAME} entry {n}: missing date, time or consumptionKWh") from None
        reading = _parse(day_text, time_text, value, n)
        reading.comment = entry.get("obtainMethod") or ""
        readings.append(reading)
    return readings


def load_curve(csv_path: Path, name: str | None = None, reference_year: int | None = None) -> LoadCurve:
    return normalize_readings(
        parse_csv(csv_path),
        name=name or Path(csv_path).stem,
        dst_correction=correct_repeated_dst_hour,
        reference_year=reference_year,
    )


def _check(response: httpx.Response, action: str) -> None:
    if response.status_code != 200:
        raise DatadisError(
            f"Datadis API error while requesting {action}.\n"
            f"Status code: {response.status_code}\n"
            f"Response: {response.text}"
        )


class DatadisClient:
    """Minimal Datadis private API client.

    The token and the supply list are memoized in a ``TTLCache`` owned by
    the client, so fetching several periods only logs in once.
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        http: httpx.Client | None = None,
        cache: TTLCache | None = None,
    ):
        if username is None or password is None:
            username, password = get_credentials()
        self.username = username
        self.password = password
        self.http = http or httpx.Client(timeout=60.0)
        self.cache = cache or TTLCache(ttl=TOKEN_TTL)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def token(self) -> str:
        return self.cache.get_or_set("token", self._login)

    def _login(self) -> str:
        logger.debug("Requesting Datadis token for %s", self.username)
        response = self.http.post(
            DATADIS_LOGIN_URL,
            data={"username": self.username, "password": self.password},
        )
        _check(response, "the authentication token")
        return response.text.strip()

    def _get(self, endpoint: str, params: dict[str, str], action: str) -> Any:
        response = self.http.get(
            f"{DATADIS_API_BASE}/{endpoint}",
            params=params,
            headers={
                "Authorization": f"Bearer {self.token()}",
                "Accept": "application/json",
            },
        )
        _check(response, action)
        return response.json()

    def get_supplies(self, nif: str) -> list[dict[str, Any]]:
        return self.cache.get_or_set(
            f"supplies:{nif}",
            lambda: self._get("get-supplies", {"authorizedNif": nif}, "the supply list"),
        )

    def find_supply(self, nif: str, cups: str) -> dict[str, Any]:
        """Supply whose CUPS matches ``cups`` on the first 20 characters."""
        prefix = cups.replace(" ", "")[:CUPS_PREFIX_LENGTH]
        for supply in self.get_supplies(nif):
            if str(supply.get("cups", ""))[:CUPS_PREFIX_LENGTH] == prefix:
                return supply
        raise DatadisError(f"The supply list does not contain CUPS {cups}")

    def get_consumption_data(self, nif: str, cups: str, start: str, end: str) -> list[dict[str, Any]]:
        """Hourly consumption entries between ``start`` and ``end`` ("YYYY/MM")."""
        if not (nif and cups and start and end):
            raise ConfigError("NIF, CUPS and the Datadis start and end months are required")
        supply = self.find_supply(nif, cups)
        entries = self._get(
            "get-consumption-data",
            {
                "cups": supply["cups"],
                "distributorCode": str(supply.get("distributorCode", "")),
                "startDate": start,
                "endDate": end,
                "measurementType": "0",
                "pointType": str(supply.get("pointType", "")),
                "authorizedNif": nif,
            },
            "the consumption data",
        )
        if not isinstance(entries, list):
            raise DatadisError(f"Unexpected consumption response: {entries!r}")
        logger.debug("Datadis returned %d entries for %s", len(entries), supply["cups"])
        return entries


def fetch_load_curve(
    nif: str,
    cups: str,
    start: str,
    end: str,
    client: DatadisClient | None = None,
    reference_year: int | None = None,
) -> LoadCurve:
    """Download consumption from the Datadis API and normalize it."""
    if client is None:
        with DatadisClient() as own_client:
            entries = own_client.get_consumption_data(nif, cups, start, end)
    else:
        entries = client.get_consumption_data(nif, cups, start, end)
    return normalize_readings(
        parse_api_entries(entries),
        name=cups.replace(" ", ""),
        dst_correction=correct_repeated_dst_hour,
        reference_year=reference_year,
    )
