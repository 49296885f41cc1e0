from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class CamelModel(BaseModel):
    """Base for records exchanged with the content loader and the presentation layer (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class DateWindow(CamelModel):
    """Inclusive calendar window. `dates` lists every ISO date from `from_date` to `to_date`."""
    from_date: str = Field(pattern=ISO_DATE_PATTERN)
    to_date: str = Field(pattern=ISO_DATE_PATTERN)
    days: int = Field(ge=1)
    dates: list[str] = Field(default_factory=list)

    def contains(self, value: Optional[str]) -> bool:
        return value is not None and self.from_date <= value <= self.to_date
