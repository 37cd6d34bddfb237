from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

TILE_SIZE = 256
MAXIMUM_LATITUDE = 2.0 * math.atan(math.exp(math.pi)) - math.pi / 2.0


@dataclass(frozen=True)
class Ellipsoid:
    x: float
    y: float
    z: float

    @property
    def maximum_radius(self) -> float:
        return max(self.x, self.y, self.z)


WGS84 = Ellipsoid(6378137.0, 6378137.0, 6356752.3142451793)
UNIT_SPHERE = Ellipsoid(1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Cartographic:
    longitude: float
    latitude: float
    height: float = 0.0

    @classmethod
    def from_degrees(cls, longitude: float, latitude: float, height: float = 0.0) -> "Cartographic":
        return cls(math.radians(longitude), math.radians(latitude), height)


@dataclass(frozen=True)
class Rectangle:
    """Geographic bounding box, all bounds in radians."""

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        if self.west > self.east:
            raise ValueError("rectangle west must not be greater than east")
        if self.south > self.north:
            raise ValueError("rectangle south must not be greater than north")

    @classmethod
    def from_degrees(cls, west: float, south: float, east: float, north: float) -> "Rectangle":
        return cls(math.radians(west), math.radians(south), math.radians(east), math.radians(north))

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def southwest(self) -> Cartographic:
        return Cartographic(self.west, self.south)

    def northeast(self) -> Cartographic:
        return Cartographic(self.east, self.north)

    def contains(self, position: Cartographic) -> bool:
        return (
            self.west <= position.longitude <= self.east
            and self.south <= position.latitude <= self.north
        )

    def intersection(self, other: "Rectangle") -> Optional["Rectangle"]:
        west = max(self.west, other.west)
        south = max(self.south, other.south)
        east = min(self.east, other.east)
        north = min(self.north, other.north)
        if west > east or south > north:
            return None
        return Rectangle(west, south, east, north)


MAX_RECTANGLE = Rectangle(-math.pi, -math.pi / 2.0, math.pi, math.pi / 2.0)


@dataclass(frozen=True)
class TileCoordinate:
    x: int
    y: int
    level: int

    def __post_init__(self) -> None:
        if self.level < 0:
            raise ValueError("tile level must be non-negative")
        if self.x < 0 or self.y < 0:
            raise ValueError("tile x and y must be non-negative")


def clamp_lat(lat: float) -> float:
    return max(min(lat, MAXIMUM_LATITUDE), -MAXIMUM_LATITUDE)


class WebMercatorProjection:
    def __init__(self, ellipsoid: Ellipsoid = WGS84) -> None:
        self.ellipsoid = ellipsoid
        self._radius = ellipsoid.maximum_radius

    def project(self, position: Cartographic) -> Tuple[float, float]:
        sin_lat = math.sin(clamp_lat(position.latitude))
        mercator_angle = 0.5 * math.log((1.0 + sin_lat) / (1.0 - sin_lat))
        return position.longitude * self._radius, mercator_angle * self._radius

    def unproject(self, x: float, y: float) -> Cartographic:
        latitude = math.pi / 2.0 - 2.0 * math.atan(math.exp(-y / self._radius))
        return Cartographic(x / self._radius, latitude)


class WebMercatorTilingScheme:
    """Power-of-two quadtree of tiles over the Web Mercator projection.

    Level 0 is ``number_of_level_zero_tiles_x`` by ``number_of_level_zero_tiles_y``
    tiles covering :attr:`rectangle`; every level doubles both counts. Rows are
    numbered from the north edge, matching the slippy map convention.
    """

    def __init__(
        self,
        ellipsoid: Ellipsoid = WGS84,
        number_of_level_zero_tiles_x: int = 1,
        number_of_level_zero_tiles_y: int = 1,
    ) -> None:
        self.ellipsoid = ellipsoid
        self.projection = WebMercatorProjection(ellipsoid)
        self._level_zero_x = number_of_level_zero_tiles_x
        self._level_zero_y = number_of_level_zero_tiles_y
        half_extent = ellipsoid.maximum_radius * math.pi
        self._native_west = -half_extent
        self._native_south = -half_extent
        self._native_east = half_extent
        self._native_north = half_extent
        southwest = self.projection.unproject(self._native_west, self._native_south)
        northeast = self.projection.unproject(self._native_east, self._native_north)
        self.rectangle = Rectangle(
            southwest.longitude, southwest.latitude, northeast.longitude, northeast.latitude
        )

    def number_of_x_tiles_at_level(self, level: int) -> int:
        return self._level_zero_x << level

    def number_of_y_tiles_at_level(self, level: int) -> int:
        return self._level_zero_y << level

    def tile_xy_to_native_rectangle(self, x: int, y: int, level: int) -> Tuple[float, float, float, float]:
        tile_width = (self._native_east - self._native_west) / self.number_of_x_tiles_at_level(level)
        tile_height = (self._native_north - self._native_south) / self.number_of_y_tiles_at_level(level)
        west = self._native_west + x * tile_width
        east = self._native_west + (x + 1) * tile_width
        north = self._native_north - y * tile_height
        south = self._native_north - (y + 1) * tile_height
        return west, south, east, north

    def tile_xy_to_rectangle(self, x: int, y: int, level: int) -> Rectangle:
        west, south, east, north = self.tile_xy_to_native_rectangle(x, y, level)
        southwest = self.projection.unproject(west, south)
        northeast = self.projection.unproject(east, north)
        return Rectangle(southwest.longitude, southwest.latitude, northeast.longitude, northeast.latitude)

    def position_to_tile_xy(self, position: Cartographic, level: int) -> Optional[TileCoordinate]:
        if not self.rectangle.contains(position):
            return None

        x_tiles = self.number_of_x_tiles_at_level(level)
        y_tiles = self.number_of_y_tiles_at_level(level)
        tile_width = (self._native_east - self._native_west) / x_tiles
        tile_height = (self._native_north - self._native_south) / y_tiles

        projected_x, projected_y = self.projection.project(position)
        # int() truncates toward zero, so a point a hair outside the edge still lands on tile 0
        x = int((projected_x - self._native_west) / tile_width)
        y = int((self._native_north - projected_y) / tile_height)
        return TileCoordinate(min(x, x_tiles - 1), min(y, y_tiles - 1), level)
