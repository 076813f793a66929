import json
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class RentalOptions(BaseModel):
    """Extras a customer ticked when booking. Unknown keys are kept as extras."""
    model_config = ConfigDict(extra="allow")

    # Pickup and return
    pickupAtAddress: Optional[bool] = None
    returnAtAddress: Optional[bool] = None
    airportDelivery: Optional[bool] = None
    # Limits
    unlimitedKm: Optional[bool] = None
    speedLimitIncrease: Optional[bool] = None
    # VIP services
    personalDriver: Optional[bool] = None
    priorityService: Optional[bool] = None
    # Insurance
    tireInsurance: Optional[bool] = None
    # Additional
    childSeat: Optional[bool] = None
    simCard: Optional[bool] = None
    roadsideAssistance: Optional[bool] = None

    @field_validator(
        "pickupAtAddress", "returnAtAddress", "airportDelivery", "unlimitedKm", "speedLimitIncrease",
        "personalDriver", "priorityService", "tireInsurance", "childSeat", "simCard", "roadsideAssistance",
        mode="before",
    )
    def truthy(cls, v):
        # each key stands alone: an odd value never fails the whole set
        return None if v is None else bool(v)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def selected(self) -> List[str]:
        """Keys of enabled options, declared fields first, then extras."""
        chosen = [name for name in type(self).model_fields if getattr(self, name) is True]
        chosen.extend(key for key, value in (self.model_extra or {}).items() if value)
        return chosen


def parse_options(raw: Any) -> RentalOptions:
    """
    Normalizes a stored option blob into ``RentalOptions``.

    Accepts None, a JSON-encoded string, a mapping or an existing
    ``RentalOptions``. Anything malformed yields empty options.
    """
    if isinstance(raw, RentalOptions):
        return raw
    if raw is None:
        return RentalOptions()

    if isinstance(raw, (str, bytes)):
        text = raw.strip() if isinstance(raw, str) else raw.decode("utf-8", "replace").strip()
        if not text:
            return RentalOptions()
        try:
            raw = json.loads(text)
        except ValueError:
            logger.debug("Discarding unparseable options blob", extra={"options_blob": text[:200]})
            return RentalOptions()
        if isinstance(raw, str):
            # double-encoded blob
            return parse_options(raw)

    if not isinstance(raw, dict):
        return RentalOptions()

    return RentalOptions.model_validate(raw)
