"""XCSoar / LK8000 task data types."""
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import List, Tuple, Union

# In-task waypoints are numbered above any waypoint file the device already loaded
WAYPOINT_INDEX_OFFSET = 10000
MAX_TASK_POINTS = 10

OUTPUT_PROFILE_NAME = "Condor.prf"
TASK_FILE_NAME = "Condor.tsk"
AIRSPACES_FILE_NAME = "Condor.txt"
WP_FILE_NAME = "Condor.dat"


class StartType(IntEnum):
    CIRCLE = 0
    LINE = 1
    SECTOR = 2


class FinishType(IntEnum):
    CIRCLE = 0
    LINE = 1
    SECTOR = 2


class SectorType(IntEnum):
    """Shape shared by every intermediate turnpoint of a task"""
    CIRCLE = 0
    FAI = 1
    DAE = 2


class AatType(IntEnum):
    CIRCLE = 0
    SECTOR = 1


class AutoAdvance(IntEnum):
    MANUAL = 0
    AUTO = 1
    ARM = 2
    ARM_START = 3


class WaypointFlag(IntFlag):
    AIRPORT = 0x01
    TURNPOINT = 0x02
    LANDPOINT = 0x04
    HOME = 0x08
    START = 0x10
    FINISH = 0x20
    RESTRICTED = 0x40


class PointRole(Enum):
    START = "Start"
    TURN = "Turn"
    AREA = "Area"
    FINISH = "Finish"


@dataclass(frozen=True)
class Waypoint:
    number: int
    latitude: float
    longitude: float
    altitude: float
    name: str
    comment: str
    flags: WaypointFlag = WaypointFlag.TURNPOINT
    in_task: bool = True


@dataclass(frozen=True)
class UnusedSlot:
    """Task point slot with no waypoint assigned"""

    @property
    def index(self):
        return -1


@dataclass(frozen=True)
class TurnSlot:
    """Start, finish or fixed turnpoint, its geometry comes from the task settings"""
    index: int


@dataclass(frozen=True)
class AatSlot:
    """Area turnpoint with its own circle or sector geometry"""
    index: int
    aat_type: AatType
    radius: int
    start_radial: int = 0
    finish_radial: int = 360


TaskPointSlot = Union[UnusedSlot, TurnSlot, AatSlot]


@dataclass
class SettingsTask:
    """Task wide settings. A single sector type and radius covers all intermediate turnpoints."""
    aat_enabled: bool = False
    aat_task_length: int = 0
    auto_advance: AutoAdvance = AutoAdvance.ARM_START
    start_type: StartType = StartType.CIRCLE
    start_radius: int = 0
    start_max_height: int = 0
    sector_type: SectorType = SectorType.CIRCLE
    sector_radius: int = 0
    finish_type: FinishType = FinishType.CIRCLE
    finish_radius: int = 0
    finish_min_height: int = 0


@dataclass(frozen=True)
class PenaltyZone:
    """Penalty zone converted to geographic corners, base 0 means ground"""
    top: float
    base: int
    corners: Tuple[Tuple[float, float], ...]


@dataclass
class TranslatedTask:
    """Everything a translation run produces besides profile values and files"""
    settings: SettingsTask
    slots: List[TaskPointSlot] = field(default_factory=list)
    waypoints: List[Waypoint] = field(default_factory=list)
    penalty_zones: List[PenaltyZone] = field(default_factory=list)

    def used_slots(self):
        return [slot for slot in self.slots if not isinstance(slot, UnusedSlot)]

    def waypoint_by_number(self, number):
        for waypoint in self.waypoints:
            if waypoint.number == number:
                return waypoint
        raise KeyError(number)

    def point_role(self, position):
        """Role of the used slot at `position` within the task"""
        used = self.used_slots()
        if position == 0:
            return PointRole.START
        if position == len(used) - 1:
            return PointRole.FINISH
        if isinstance(used[position], AatSlot):
            return PointRole.AREA
        return PointRole.TURN
