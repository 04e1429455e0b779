"""Condor task translation to XCSoar / LK8000 profile, task, waypoint and airspace files."""
import argparse
import os
from dataclasses import dataclass, replace
from typing import Optional

import math_utils
import xcsoar_exports
from condor_tools import CondorTask, FlatEarthCoordConverter, SECTOR_CLASSIC, SECTOR_WINDOW
from xcsoar_profile import XCSoarProfile
from xcsoar_types import (
    AIRSPACES_FILE_NAME,
    MAX_TASK_POINTS,
    OUTPUT_PROFILE_NAME,
    TASK_FILE_NAME,
    WAYPOINT_INDEX_OFFSET,
    WP_FILE_NAME,
    AatSlot,
    AatType,
    AutoAdvance,
    FinishType,
    PenaltyZone,
    SectorType,
    SettingsTask,
    StartType,
    TranslatedTask,
    TurnSlot,
    UnusedSlot,
    Waypoint,
    WaypointFlag,
)

DEFAULT_TARGET = "XCSoar"
TARGETS = ["XCSoar", "LK8000"]

AIRSPACE_BANNER = [
    "*************************************************************",
    "* Condor Task Penalty Zones generated with condor-nav-tools *",
    "*************************************************************",
]

parser = argparse.ArgumentParser(description="Translate a Condor flight plan task into XCSoar / LK8000 files")
parser.add_argument('--in_file', type=str, required=True, help='Condor flight plan (.fpl)')
parser.add_argument('--out_dir', type=str, required=False, default="", help='Output directory (default: next to the flight plan)')
parser.add_argument('--profile', type=str, required=False, help='Existing profile to update')
parser.add_argument('--origin_lat', type=float, required=True, help='Latitude of the landscape origin')
parser.add_argument('--origin_lon', type=float, required=True, help='Longitude of the landscape origin')
parser.add_argument('--aat_time', type=int, required=False, default=0, help='AAT minimum time in minutes, 0 for a racing task')
parser.add_argument('--max_task_points', type=int, required=False, default=MAX_TASK_POINTS)
parser.add_argument('--generate_wp_file', action='store_true', required=False)
parser.add_argument('--path_prefix', type=str, required=False, default="", help='Device side directory of the generated files')
parser.add_argument('--target', type=str, required=False, default=DEFAULT_TARGET, choices=TARGETS)
parser.add_argument('--kml', action='store_true', required=False, help='Also write a KML task preview')
parser.add_argument('--gpx', action='store_true', required=False, help='Also write the task waypoints as GPX')
parser.add_argument('--summary', action='store_true', required=False, help='Also write a CSV leg summary')


class TranslationError(Exception):
    """Translation cannot produce a valid task, nothing written for it should be used"""


class TranslationMessages:
    """Collects the warnings and reported errors of a translation run"""

    def __init__(self):
        self.warnings = []
        self.errors = []

    def warn(self, text):
        self.warnings.append(text)

    def error(self, text):
        self.errors.append(text)


@dataclass(frozen=True)
class SectorState:
    """
    Sector settings accumulated over the task points in task order.
    sector_type stays None until an intermediate turnpoint declares one.
    """
    start_type: StartType = StartType.CIRCLE
    start_radius: int = 0
    start_max_height: int = 0
    sector_type: Optional[SectorType] = None
    sector_radius: int = 0
    finish_type: FinishType = FinishType.CIRCLE
    finish_radius: int = 0
    conflict: bool = False


def waypoint_name(tp_index, last_index, tp_name):
    if tp_index == 1:
        return "S:" + tp_name
    if tp_index == last_index:
        return "F:" + tp_name
    return f"{tp_index - 1}:{tp_name}"


def build_waypoint(turnpoint, tp_index, last_index, coord_conv):
    latitude, longitude = coord_conv.latlon(turnpoint.x, turnpoint.y)
    altitude = turnpoint.min_altitude if turnpoint.min_altitude else turnpoint.z
    return Waypoint(
        number=WAYPOINT_INDEX_OFFSET + tp_index,
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        name=waypoint_name(tp_index, last_index, turnpoint.name),
        comment=turnpoint.name,
        flags=WaypointFlag.TURNPOINT,
        in_task=True,
    )


def build_aat_slot(task, tp_index, waypoint, coord_conv):
    """AAT circle, or AAT sector opening along the bisector of the legs from the neighbours"""
    turnpoint = task.turnpoints[tp_index]
    if turnpoint.angle == 360:
        return AatSlot(waypoint.number, AatType.CIRCLE, turnpoint.radius)

    previous_tp = task.turnpoints[tp_index - 1]
    lat1, lon1 = coord_conv.latlon(previous_tp.x, previous_tp.y)
    angle1 = math_utils.bearing(lon1, lat1, waypoint.longitude, waypoint.latitude)

    next_tp = task.turnpoints[tp_index + 1]
    lat2, lon2 = coord_conv.latlon(next_tp.x, next_tp.y)
    angle2 = math_utils.bearing(lon2, lat2, waypoint.longitude, waypoint.latitude)

    half_angle = math_utils.sector_bisector(angle1, angle2)
    start_radial, finish_radial = math_utils.sector_radials(half_angle, turnpoint.angle)
    return AatSlot(waypoint.number, AatType.SECTOR, turnpoint.radius, start_radial, finish_radial)


def _merge_uniform_sector(state, sector_type, radius, name, messages, target_name):
    """
    Fold one intermediate turnpoint into the single task wide sector.
    FAI replaces an earlier circle, a circle never replaces FAI. Either way the task is flagged.
    Same type with another radius keeps the smallest one.
    """
    if state.sector_type is not None and state.sector_type != sector_type:
        if sector_type == SectorType.FAI:
            return replace(state, sector_type=sector_type, sector_radius=radius, conflict=True)
        return replace(state, conflict=True)

    if state.sector_type is not None and state.sector_radius != radius:
        shape = "FAI sectors" if sector_type == SectorType.FAI else "circle sectors"
        messages.warn(f"WARNING: {name}: {target_name} does not support different TP types. "
                      f"The smallest radius will be used for all {shape}. "
                      f"If you advance a sector in {target_name} you will advance it in Condor.")
        return replace(state, sector_type=sector_type, sector_radius=min(state.sector_radius, radius))

    return replace(state, sector_type=sector_type, sector_radius=radius)


def resolve_sector(state, turnpoint, tp_index, last_index, name, messages, target_name=DEFAULT_TARGET):
    """
    Map the angle of a classic (non AAT) task point onto the start, finish or
    task wide sector settings and return the new state.
    """
    is_start = tp_index == 1
    is_finish = not is_start and tp_index == last_index
    angle = turnpoint.angle
    radius = turnpoint.radius

    if angle == 90:
        if is_start:
            state = replace(state, start_type=StartType.SECTOR)
        elif is_finish:
            state = replace(state, finish_type=FinishType.SECTOR)
        else:
            state = _merge_uniform_sector(state, SectorType.FAI, radius, name, messages, target_name)

    elif angle == 180:
        if is_start:
            state = replace(state, start_type=StartType.LINE)
        elif is_finish:
            state = replace(state, finish_type=FinishType.LINE)
        elif state.sector_type == SectorType.FAI:
            state = replace(state, conflict=True)
        else:
            messages.warn(f"WARNING: {name}: {target_name} does not support line TP type. "
                          f"FAI Sector will be used instead. "
                          f"You may need to manually advance a waypoint after reaching it in Condor.")
            state = replace(state, sector_type=SectorType.FAI, sector_radius=radius)

    elif angle in (270, 360):
        if angle == 270:
            messages.warn(f"WARNING: {name}: {target_name} does not support TP with angle '270'. "
                          f"Circle sector will be used instead. "
                          f"Be careful to advance a waypoint in Condor after it has been advanced by the {target_name}.")
        if is_start:
            state = replace(state, start_type=StartType.CIRCLE)
        elif is_finish:
            state = replace(state, finish_type=FinishType.CIRCLE)
        else:
            state = _merge_uniform_sector(state, SectorType.CIRCLE, radius, name, messages, target_name)

    # TODO: other interior angles are dropped without a warning, decide on a mapping for them

    if is_start:
        state = replace(state, start_radius=radius, start_max_height=turnpoint.max_altitude)
    elif is_finish:
        state = replace(state, finish_radius=radius)
    return state


def read_auto_advance(profile):
    try:
        return AutoAdvance(int(profile.value("AutoAdvance")))
    except (KeyError, ValueError):
        return AutoAdvance.ARM_START


def assemble_settings(state, aat_time, auto_advance):
    # Condor only has AGL finish heights, the target wants MSL, so no finish height
    return SettingsTask(
        aat_enabled=aat_time > 0,
        aat_task_length=aat_time,
        auto_advance=auto_advance,
        start_type=state.start_type,
        start_radius=state.start_radius,
        start_max_height=state.start_max_height,
        sector_type=state.sector_type if state.sector_type is not None else SectorType.CIRCLE,
        sector_radius=state.sector_radius,
        finish_type=state.finish_type,
        finish_radius=state.finish_radius,
        finish_min_height=0,
    )


def write_task_settings(profile, settings):
    profile.set_value("StartLine", int(settings.start_type))
    profile.set_value("StartMaxHeight", settings.start_max_height)
    profile.set_value("StartMaxHeightMargin", 0)
    profile.set_value("StartHeightRef", 1)  # AMSL
    profile.set_value("StartRadius", settings.start_radius)
    profile.set_value("StartMaxSpeed", 0)
    profile.set_value("StartMaxSpeedMargin", 0)

    profile.set_value("FAISector", int(settings.sector_type))
    profile.set_value("Radius", settings.sector_radius)

    profile.set_value("FinishLine", int(settings.finish_type))
    profile.set_value("FinishMinHeight", settings.finish_min_height)
    profile.set_value("FinishRadius", settings.finish_radius)
    profile.set_value("FAIFinishHeight", settings.finish_min_height)


def waypoint_file_line(waypoint):
    """Waypoint file record: index,lat,lon,altitudeM,T,name,comment"""
    index = waypoint.number - WAYPOINT_INDEX_OFFSET
    latitude = math_utils.coord_to_ddmmff(waypoint.latitude, is_latitude=True)
    longitude = math_utils.coord_to_ddmmff(waypoint.longitude, is_latitude=False)
    return f"{index},{latitude},{longitude},{waypoint.altitude:g}M,T,{waypoint.name},{waypoint.comment}"


def write_waypoint_file(path, waypoints):
    with open(path, "w", encoding="utf-8") as wp_file:
        for waypoint in waypoints:
            wp_file.write(waypoint_file_line(waypoint) + "\n")


def process_task(profile, task, coord_conv, messages, aat_time=0, max_task_points=MAX_TASK_POINTS,
                 generate_wp_file=False, wp_output_dir="", target_name=DEFAULT_TARGET):
    """
    Translate the task points of a Condor task (the takeoff point is skipped),
    write the task settings to the profile and optionally the waypoint file.

    Args:
        profile: XCSoarProfile read for AutoAdvance and updated with the task settings
        task: CondorTask
        coord_conv: CoordConverter of the task landscape
        messages: TranslationMessages collecting warnings and reported errors
        aat_time: AAT minimum time in minutes, 0 disables AAT
        max_task_points: task point capacity of the target
        generate_wp_file: write the waypoint file to wp_output_dir
        target_name: target named in the warnings

    Returns:
        TranslatedTask with the resolved settings, task point slots and waypoints

    Raises:
        TranslationError: the task has more points than the target supports
    """
    tp_count = task.task_count
    if tp_count - 1 > max_task_points:
        raise TranslationError(f"Too many waypoints ({tp_count - 1}) in a task file "
                               f"(only {max_task_points} supported)!!!")

    aat_enabled = aat_time > 0
    auto_advance = read_auto_advance(profile)
    last_index = tp_count - 1

    slots = [UnusedSlot()] * max_task_points
    waypoints = []
    state = SectorState()

    # skip takeoff waypoint
    for tp_index in range(1, tp_count):
        turnpoint = task.turnpoints[tp_index]
        waypoint = build_waypoint(turnpoint, tp_index, last_index, coord_conv)
        waypoints.append(waypoint)

        if turnpoint.sector_type == SECTOR_CLASSIC:
            if aat_enabled and 1 < tp_index < last_index:
                slots[tp_index - 1] = build_aat_slot(task, tp_index, waypoint, coord_conv)
            else:
                slots[tp_index - 1] = TurnSlot(waypoint.number)
                state = resolve_sector(state, turnpoint, tp_index, last_index, waypoint.name, messages, target_name)
        elif turnpoint.sector_type == SECTOR_WINDOW:
            slots[tp_index - 1] = TurnSlot(waypoint.number)
            messages.warn(f"WARNING: {waypoint.name}: {target_name} does not support window TP type. "
                          f"Circle TP will be used and you are responsible for reaching it "
                          f"on correct height and with correct heading.")
        else:
            slots[tp_index - 1] = TurnSlot(waypoint.number)
            messages.error(f"ERROR: Unsupported sector type '{turnpoint.sector_type}' "
                           f"specified for TP '{waypoint.name}'!!!")

    if state.conflict:
        messages.warn(f"WARNING: {target_name} does not support different TP types. "
                      f"FAI Sector will be used for all sectors. "
                      f"You may need to manually advance a waypoint after reaching it in Condor.")

    settings = assemble_settings(state, aat_time, auto_advance)
    write_task_settings(profile, settings)

    if generate_wp_file:
        write_waypoint_file(os.path.join(wp_output_dir, WP_FILE_NAME), waypoints)

    return TranslatedTask(settings=settings, slots=slots, waypoints=waypoints)


def _format_number(value):
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def translate_penalty_zones(condor_zones, coord_conv):
    zones = []
    for condor_zone in condor_zones:
        corners = tuple(coord_conv.latlon(x, y) for x, y in condor_zone.corners)
        zones.append(PenaltyZone(top=condor_zone.top, base=condor_zone.base, corners=corners))
    return zones


def airspace_lines(zones):
    """OpenAir records of the penalty zones, banner included"""
    lines = list(AIRSPACE_BANNER)
    for index, zone in enumerate(zones):
        lines.append("")
        lines.append("AC P")
        lines.append(f"AN Penalty Zone {index + 1}")
        lines.append(f"AH {_format_number(zone.top)}m AMSL")
        if zone.base == 0:
            lines.append("AL 0")
        else:
            lines.append(f"AL {zone.base}m AMSL")
        for latitude, longitude in zone.corners:
            lines.append(f"DP {math_utils.coord_to_ddmmss(latitude, True)} "
                         f"{math_utils.coord_to_ddmmss(longitude, False)}")
    return lines


def process_penalty_zones(profile, task, coord_conv, path_prefix="", output_dir=""):
    """
    Write the penalty zones as an airspace file and point the profile to it.
    Without penalty zones the profile airspace file is cleared and no file is written.
    """
    if not task.penalty_zones:
        profile.set_value("AirspaceFile", '""')
        return []

    zones = translate_penalty_zones(task.penalty_zones, coord_conv)
    airspace_path = os.path.join(path_prefix, AIRSPACES_FILE_NAME) if path_prefix else AIRSPACES_FILE_NAME
    profile.set_value("AirspaceFile", f'"{airspace_path}"')

    with open(os.path.join(output_dir, AIRSPACES_FILE_NAME), "w", encoding="utf-8") as airspaces_file:
        for line in airspace_lines(zones):
            airspaces_file.write(line + "\n")
    return zones


def process_scenery_time(profile):
    """Device clock follows the simulator GPS time"""
    profile.set_value("UTCOffset", 0)


def translate(task, coord_conv, output_dir, profile=None, messages=None, aat_time=0,
              max_task_points=MAX_TASK_POINTS, generate_wp_file=False, path_prefix="",
              target_name=DEFAULT_TARGET):
    """Run a complete translation and write the profile, task and airspace files to output_dir"""
    if profile is None:
        profile = XCSoarProfile()
    if messages is None:
        messages = TranslationMessages()

    process_scenery_time(profile)
    translated = process_task(profile, task, coord_conv, messages, aat_time=aat_time,
                              max_task_points=max_task_points, generate_wp_file=generate_wp_file,
                              wp_output_dir=output_dir, target_name=target_name)
    translated.penalty_zones = process_penalty_zones(profile, task, coord_conv,
                                                     path_prefix=path_prefix, output_dir=output_dir)

    xcsoar_exports.write_task_file(os.path.join(output_dir, TASK_FILE_NAME), translated)
    profile.save(os.path.join(output_dir, OUTPUT_PROFILE_NAME))
    return translated


def main():
    args = parser.parse_args()

    out_dir = args.out_dir or os.path.dirname(os.path.abspath(args.in_file))
    if not os.path.isfile(args.in_file):
        print(f"Error: {args.in_file} is not a valid file")
        return 1
    os.makedirs(out_dir, exist_ok=True)

    print(f"Loading task from {args.in_file}")
    task = CondorTask(args.in_file)
    coord_conv = FlatEarthCoordConverter(args.origin_lat, args.origin_lon)
    profile = XCSoarProfile(args.profile)
    messages = TranslationMessages()

    try:
        translated = translate(task, coord_conv, out_dir, profile=profile, messages=messages,
                               aat_time=args.aat_time, max_task_points=args.max_task_points,
                               generate_wp_file=args.generate_wp_file, path_prefix=args.path_prefix,
                               target_name=args.target)
    except TranslationError as ex:
        print(f"ERROR: {ex}")
        return 1

    for warning in messages.warnings:
        print(warning)
    for error in messages.errors:
        print(error)

    if args.kml:
        xcsoar_exports.export_to_kml(translated, os.path.join(out_dir, "Condor.kml"))
    if args.gpx:
        xcsoar_exports.export_gpx(translated, os.path.join(out_dir, "Condor.gpx"))
    if args.summary:
        xcsoar_exports.save_leg_summary_csv(translated, os.path.join(out_dir, "Condor_legs.csv"))

    print(f"Translated {len(translated.waypoints)} task points and "
          f"{len(translated.penalty_zones)} penalty zones to {out_dir}")
    return 0


if __name__ == "__main__":
    exit(main())
