"""Task file, KML preview, GPX and leg summary exports of a translated task."""
import xml.etree.ElementTree as ET
from xml.dom import minidom

import gpxpy.gpx
import pandas as pd
from polycircles import polycircles
from simplekml import AltitudeMode, Color, Kml

import math_utils
from xcsoar_types import AatSlot, AatType, PointRole, SectorType


def _xml_prettify(root: ET.Element) -> str:
    rough = ET.tostring(root, encoding="unicode")
    return minidom.parseString(rough).toprettyxml(indent="  ")


def _zone_for_type(geometry, radius):
    """Observation zone of a start or finish, geometry is a StartType or FinishType"""
    if geometry.name == "LINE":
        return "Line", {"length": str(2 * radius)}
    if geometry.name == "SECTOR":
        return "FAISector", {"radius": str(radius)}
    return "Cylinder", {"radius": str(radius)}


def observation_zone(role, slot, settings):
    """Observation zone type and attributes of a task point"""
    if role is PointRole.START:
        return _zone_for_type(settings.start_type, settings.start_radius)
    if role is PointRole.FINISH:
        return _zone_for_type(settings.finish_type, settings.finish_radius)
    if isinstance(slot, AatSlot):
        if slot.aat_type is AatType.CIRCLE:
            return "Cylinder", {"radius": str(slot.radius)}
        return "Sector", {
            "radius": str(slot.radius),
            "start_radial": str(slot.start_radial),
            "end_radial": str(slot.finish_radial),
        }
    if settings.sector_type == SectorType.FAI:
        return "FAISector", {"radius": str(settings.sector_radius)}
    return "Cylinder", {"radius": str(settings.sector_radius)}


def zone_radius(role, slot, settings):
    """Radius used to draw the task point, lines are drawn with their half length"""
    if role is PointRole.START:
        return settings.start_radius
    if role is PointRole.FINISH:
        return settings.finish_radius
    if isinstance(slot, AatSlot):
        return slot.radius
    return settings.sector_radius


def build_task_xml(translated):
    settings = translated.settings
    task_el = ET.Element("Task", {
        "type": "AAT" if settings.aat_enabled else "RT",
        "aat_min_time": str(settings.aat_task_length * 60),
        "start_max_speed": "0",
        "start_max_height": str(settings.start_max_height),
        "start_max_height_ref": "MSL",
        "finish_min_height": str(settings.finish_min_height),
        "finish_min_height_ref": "AGL",
    })

    for position, slot in enumerate(translated.used_slots()):
        role = translated.point_role(position)
        waypoint = translated.waypoint_by_number(slot.index)

        point_el = ET.SubElement(task_el, "Point", {"type": role.value})
        waypoint_el = ET.SubElement(point_el, "Waypoint", {
            "name": waypoint.name,
            "id": str(waypoint.number),
            "comment": waypoint.comment,
            "altitude": f"{waypoint.altitude:g}",
        })
        ET.SubElement(waypoint_el, "Location", {
            "latitude": f"{waypoint.latitude:.6f}",
            "longitude": f"{waypoint.longitude:.6f}",
        })
        zone_type, zone_attributes = observation_zone(role, slot, settings)
        ET.SubElement(point_el, "ObservationZone", {"type": zone_type, **zone_attributes})

    return task_el


def write_task_file(path, translated):
    """Dump the task point table as an XCSoar XML task"""
    with open(path, "w", encoding="utf-8") as task_file:
        task_file.write(_xml_prettify(build_task_xml(translated)))


def export_to_kml(translated, path):
    """Task preview: turnpoint zones drawn as circles, the task line and the penalty zones"""
    kml_output = Kml()
    settings = translated.settings
    last_tp = None

    for position, slot in enumerate(translated.used_slots()):
        role = translated.point_role(position)
        waypoint = translated.waypoint_by_number(slot.index)
        radius = zone_radius(role, slot, settings)

        if radius > 0:
            # Google Earth has no circles, approximate with a polygon
            polycircle = polycircles.Polycircle(latitude=waypoint.latitude,
                                                longitude=waypoint.longitude,
                                                radius=radius,
                                                number_of_vertices=36)
            polygon = kml_output.newpolygon(name=waypoint.name,
                                            outerboundaryis=polycircle.to_kml())
            polygon.style.linestyle.width = 2
            polygon.style.linestyle.color = "FFFFFFFF"
            # make the fill empty
            polygon.style.polystyle.color = "00000000"

        if last_tp is not None:
            line = kml_output.newlinestring(coords=[last_tp, (waypoint.longitude, waypoint.latitude, 0)],
                                            altitudemode="relative")
            line.style.linestyle.color = "FFFFFFFF"
        last_tp = (waypoint.longitude, waypoint.latitude, 0)

    for index, zone in enumerate(translated.penalty_zones):
        coords = [(longitude, latitude, zone.top) for latitude, longitude in zone.corners]
        coords.append(coords[0])
        polygon = kml_output.newpolygon(name=f"Penalty Zone {index + 1}", outerboundaryis=coords)
        polygon.altitudemode = AltitudeMode.absolute
        polygon.extrude = 1
        polygon.style.linestyle.color = Color.red
        polygon.style.polystyle.color = "4d0000ff"

    kml_output.save(path)


def export_gpx(translated, path):
    gpx_out = gpxpy.gpx.GPX()
    gpx_route = gpxpy.gpx.GPXRoute(name="Condor task")
    gpx_out.routes.append(gpx_route)

    for slot in translated.used_slots():
        waypoint = translated.waypoint_by_number(slot.index)
        gpx_out.waypoints.append(gpxpy.gpx.GPXWaypoint(
            waypoint.latitude, waypoint.longitude, elevation=waypoint.altitude,
            name=waypoint.name, comment=waypoint.comment))
        gpx_route.points.append(gpxpy.gpx.GPXRoutePoint(
            waypoint.latitude, waypoint.longitude, elevation=waypoint.altitude, name=waypoint.name))

    with open(path, "w", encoding="utf-8") as xml:
        xml.write(gpx_out.to_xml())


def build_leg_summary(translated):
    """One row per task point with the leg leading to it"""
    rows = []
    for slot in translated.used_slots():
        waypoint = translated.waypoint_by_number(slot.index)
        rows.append({
            "name": waypoint.name,
            "lat": waypoint.latitude,
            "lon": waypoint.longitude,
            "altitude_m": waypoint.altitude,
        })
    dataframe = pd.DataFrame(rows, columns=["name", "lat", "lon", "altitude_m"])

    dataframe["prev_lat"] = dataframe["lat"].shift(periods=1)
    dataframe["prev_lon"] = dataframe["lon"].shift(periods=1)
    dataframe["leg_distance_m"] = math_utils.haversine(
        dataframe["prev_lat"], dataframe["prev_lon"],
        dataframe["lat"], dataframe["lon"]
    ).fillna(0)
    dataframe["leg_bearing_deg"] = [
        0 if pd.isna(row["prev_lat"]) else math_utils.bearing(row["prev_lon"], row["prev_lat"], row["lon"], row["lat"])
        for _, row in dataframe.iterrows()
    ]
    dataframe["cumulative_distance_m"] = dataframe["leg_distance_m"].cumsum()

    dataframe = dataframe.drop(columns=["prev_lat", "prev_lon"])
    return dataframe


def save_leg_summary_csv(translated, path):
    build_leg_summary(translated).to_csv(path, index=False)
