import math
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.01


class Location(NamedTuple):
    lat: float
    lon: float


def calculate(lat: float, lon: float, distance_km: float, bearing: float) -> Location:
    """Точка, удалённая от (lat, lon) на distance_km по азимуту bearing (в градусах)."""
    radian_lat = math.radians(lat)
    radian_lon = math.radians(lon)
    radian_angle = math.radians(bearing)
    distance_radius = distance_km / EARTH_RADIUS_KM

    new_lat = math.asin(
        math.sin(radian_lat) * math.cos(distance_radius)
        + math.cos(radian_lat) * math.sin(distance_radius) * math.cos(radian_angle)
    )
    new_lon = radian_lon + math.atan2(
        math.sin(radian_angle) * math.sin(distance_radius) * math.cos(radian_lat),
        math.cos(distance_radius) - math.sin(radian_lat) * math.sin(new_lat),
    )
    new_lon = (new_lon + 3 * math.pi) % (2 * math.pi) - math.pi

    return Location(math.degrees(new_lat), math.degrees(new_lon))


def bounding_box(lat: float, lon: float, distance_km: float) -> tuple[Location, Location]:
    """Прямоугольник (северо-восток, юго-запад) вокруг точки: половина дистанции по 45° и 225°."""
    north_east = calculate(lat, lon, distance_km / 2, 45.0)
    south_west = calculate(lat, lon, distance_km / 2, 225.0)
    return north_east, south_west
