"""Fleet listing endpoint.

Endpoint:
  - /devices
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from sharealyzer._constants import DEVICES_PATH
from sharealyzer._transport import Transport
from sharealyzer.config import BoundingBox
from sharealyzer.exceptions import TransportError
from sharealyzer.models.circ import CircScooter
from sharealyzer.session import Session

_logger = logging.getLogger(__name__)


def build_devices_params(box: BoundingBox) -> dict[str, str]:
    """Query parameters selecting all vehicles inside *box*."""
    return {
        "latitudeTopLeft": f"{box.lat_top_left:.5f}",
        "longitudeTopLeft": f"{box.lon_top_left:.5f}",
        "latitudeBottomRight": f"{box.lat_bottom_right:.5f}",
        "longitudeBottomRight": f"{box.lon_bottom_right:.5f}",
    }


def parse_devices(data: Any) -> list[CircScooter]:
    """Parse the ``{"devices": [...], "total": n}`` envelope.

    Records that fail validation are logged and dropped; one broken record
    must not discard the rest of the fleet.
    """
    if not isinstance(data, dict) or not isinstance(data.get("devices"), list):
        raise TransportError("Devices response has no 'devices' list", endpoint=DEVICES_PATH)

    scooters: list[CircScooter] = []
    for index, record in enumerate(data["devices"]):
        try:
            scooters.append(CircScooter.model_validate(record))
        except ValidationError as exc:
            _logger.warning("Skipping invalid device record #%d: %s", index, exc.errors()[0]["msg"])

    total = data.get("total")
    if isinstance(total, int) and total != len(data["devices"]):
        _logger.debug("Devices response lists %d of %d vehicles", len(data["devices"]), total)
    return scooters


async def fetch_devices(transport: Transport, box: BoundingBox, session: Session) -> list[CircScooter]:
    """Fetch all vehicles currently listed inside *box*."""
    data = await transport.request_json(
        "GET",
        DEVICES_PATH,
        params=build_devices_params(box),
        access_token=session.access_token,
    )
    return parse_devices(data)
