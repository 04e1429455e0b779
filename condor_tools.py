"""Condor flight plan (.fpl) parsing and coordinate conversion."""
import configparser
from dataclasses import dataclass, field

import numpy as np

import math_utils

TASK_SECTION = "Task"

SECTOR_CLASSIC = 0
SECTOR_WINDOW = 1

PENALTY_ZONE_CORNERS = 4


def _to_int(value, default=0):
    if value is None or value == "":
        return default
    return int(float(value))


def _to_float(value, default=0.0):
    if value is None or value == "":
        return default
    return float(value)


@dataclass
class CondorTurnpoint:
    """ Container for the task points of a Condor flight plan"""

    order: int = 0
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    sector_type: int = SECTOR_CLASSIC
    radius: int = 0
    angle: int = 0
    # TPWidth holds the minimum altitude of a classic sector, 0 when not set
    min_altitude: int = 0
    max_altitude: int = 0

    def load_from_dict(self, task_dict, order):
        suffix = str(order)
        self.order = order
        self.name = task_dict.get("TPName" + suffix, "")
        self.x = _to_float(task_dict.get("TPPosX" + suffix))
        self.y = _to_float(task_dict.get("TPPosY" + suffix))
        self.z = _to_float(task_dict.get("TPPosZ" + suffix))
        self.sector_type = _to_int(task_dict.get("TPSectorType" + suffix))
        self.radius = _to_int(task_dict.get("TPRadius" + suffix))
        self.angle = _to_int(task_dict.get("TPAngle" + suffix))
        self.min_altitude = _to_int(task_dict.get("TPWidth" + suffix))
        self.max_altitude = _to_int(task_dict.get("TPHeight" + suffix))

    @property
    def position(self):
        return (self.x, self.y)


@dataclass
class CondorPenaltyZone:
    """ Quadrilateral penalty zone, corners in Condor planar coordinates"""

    order: int = 0
    top: float = 0.0
    base: int = 0
    corners: list = field(default_factory=list)

    def load_from_dict(self, task_dict, order):
        suffix = str(order)
        self.order = order
        self.top = _to_float(task_dict.get("PZTop" + suffix))
        self.base = _to_int(task_dict.get("PZBase" + suffix))
        self.corners = []
        for corner in range(PENALTY_ZONE_CORNERS):
            self.corners.append((
                _to_float(task_dict.get(f"PZPos{corner}X{suffix}")),
                _to_float(task_dict.get(f"PZPos{corner}Y{suffix}")),
            ))


class CondorTask:
    """Condor task definition read from the [Task] section of a flight plan"""

    def __init__(self, path=None):
        self.file_path = path
        self.task_count = 0
        self.turnpoints = []
        self.penalty_zones = []
        if path is not None:
            self.ingest_fpl(path)

    @classmethod
    def from_dict(cls, task_dict):
        """Build a task straight from [Task] key/value pairs"""
        task = cls()
        task.load_task_dict(task_dict)
        return task

    def ingest_fpl(self, fpl_file: str):
        """
        Parse a Condor flight plan. Flight plans are INI files, the task lives in the [Task] section.
        """
        fpl = configparser.ConfigParser(interpolation=None, strict=False)
        # keys are case sensitive (TPPosX1, PZPos0X1, ...)
        fpl.optionxform = str
        with open(fpl_file, "r", encoding="utf-8", errors="replace") as fpl_data:
            fpl.read_file(fpl_data)

        if not fpl.has_section(TASK_SECTION):
            raise KeyError(f"No [{TASK_SECTION}] section in {fpl_file}")
        self.load_task_dict(dict(fpl.items(TASK_SECTION)))

    def load_task_dict(self, task_dict):
        # Count includes the takeoff point 0
        self.task_count = _to_int(task_dict["Count"])

        self.turnpoints = []
        for index in range(self.task_count):
            next_turnpoint = CondorTurnpoint()
            next_turnpoint.load_from_dict(task_dict, index)
            self.turnpoints.append(next_turnpoint)

        self.penalty_zones = []
        for index in range(_to_int(task_dict.get("PZCount"))):
            next_zone = CondorPenaltyZone()
            next_zone.load_from_dict(task_dict, index)
            self.penalty_zones.append(next_zone)


class CoordConverter:
    """
    Converts Condor planar coordinates (meters) to signed latitude/longitude in degrees.
    Landscape specific converters implement latitude and longitude.
    """

    def latitude(self, x, y):
        raise NotImplementedError

    def longitude(self, x, y):
        raise NotImplementedError

    def latlon(self, x, y):
        return self.latitude(x, y), self.longitude(x, y)


class FlatEarthCoordConverter(CoordConverter):
    """
    Local equirectangular projection around the landscape origin.
    Condor X grows to the west and Y to the north, the origin being the south east corner.
    Good enough for the size of a Condor landscape, not for survey work.
    """

    def __init__(self, origin_lat, origin_lon):
        self.origin_lat = origin_lat
        self.origin_lon = origin_lon
        self._lon_scale = np.cos(origin_lat * math_utils.DEGREES_TO_RADS)

    def latitude(self, x, y):
        return float(self.origin_lat + y / math_utils.EARTH_RADIUS_M * math_utils.RADS_TO_DEGREES)

    def longitude(self, x, y):
        return float(self.origin_lon
                     - x / (math_utils.EARTH_RADIUS_M * self._lon_scale) * math_utils.RADS_TO_DEGREES)
