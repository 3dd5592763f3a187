from typing import Annotated

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

UNKNOWN_CITY = "Unknown"

# Column order of the employees file, also used as the JSON keys
FIELDNAMES = ["id", "name", "email", "latitude", "longitude", "city", "lastSeen"]


class Employee(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    email: str = ""
    latitude: str = ""
    longitude: str = ""
    city: str = UNKNOWN_CITY
    last_seen: str = Field("", alias="lastSeen")

    @property
    def is_sharing(self) -> bool:
        return bool(self.latitude and self.longitude)

    def to_json(self):
        return self.model_dump(by_alias=True)


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


RequiredText = Annotated[str, AfterValidator(_not_blank)]


def _not_bool(value):
    # JSON true/false would otherwise coerce to 1.0/0.0
    if isinstance(value, bool):
        raise ValueError("must be a number")
    return value


Coordinate = Annotated[float, BeforeValidator(_not_bool)]


class CreateEmployeeRequest(BaseModel):
    id: RequiredText
    name: RequiredText
    email: RequiredText


class LocationUpdateRequest(BaseModel):
    id: RequiredText
    # Numeric strings such as "51.5074" are coerced
    latitude: Coordinate = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: Coordinate = Field(ge=-180, le=180, allow_inf_nan=False)


class StopSharingRequest(BaseModel):
    id: RequiredText
