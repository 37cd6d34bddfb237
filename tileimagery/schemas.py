from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator, model_validator

from tileimagery.credit import DEFAULT_CREDIT, Credit
from tileimagery.discard import TileDiscardPolicy
from tileimagery.geo import WGS84, Ellipsoid, Rectangle
from tileimagery.urls import Proxy

DEFAULT_URL = "//a.tile.openstreetmap.org/"
MAXIMUM_TILES_AT_MINIMUM_LEVEL = 4


class ProviderOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(DEFAULT_URL, min_length=1)
    file_extension: str = Field("png", min_length=1)
    proxy: Optional[Any] = None
    rectangle: Optional[InstanceOf[Rectangle]] = None
    minimum_level: int = Field(0, ge=0)
    maximum_level: Optional[int] = Field(None, ge=0)
    ellipsoid: InstanceOf[Ellipsoid] = WGS84
    credit: Union[InstanceOf[Credit], str] = DEFAULT_CREDIT
    tile_discard_policy: Optional[Any] = None
    maximum_tiles_at_minimum_level: int = Field(MAXIMUM_TILES_AT_MINIMUM_LEVEL, ge=1)

    @field_validator("file_extension")
    @classmethod
    def _strip_leading_dot(cls, value: str) -> str:
        value = value.lstrip(".")
        if not value:
            raise ValueError("file_extension must not be empty")
        return value

    @field_validator("credit")
    @classmethod
    def _wrap_credit(cls, value: Union[Credit, str]) -> Credit:
        if isinstance(value, str):
            return Credit(value)
        return value

    @field_validator("proxy")
    @classmethod
    def _check_proxy(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, Proxy):
            raise ValueError("proxy must provide a resolve(url) method")
        return value

    @field_validator("tile_discard_policy")
    @classmethod
    def _check_discard_policy(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, TileDiscardPolicy):
            raise ValueError("tile_discard_policy must provide is_ready() and should_discard(image)")
        return value

    @model_validator(mode="after")
    def _validate_levels(self) -> "ProviderOptions":
        if self.maximum_level is not None and self.maximum_level < self.minimum_level:
            raise ValueError("maximum_level must not be less than minimum_level")
        return self
