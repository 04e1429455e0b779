import numpy as np

EARTH_RADIUS_M = 6371000
DEGREES_TO_RADS = np.pi / 180.0
RADS_TO_DEGREES = 180.0 / np.pi


def haversine(lat1, lon1, lat2, lon2):
    """
    Calculate the great circle distance in meters between two points
    on the earth (specified in decimal degrees)
    """
    # convert decimal degrees to radians
    lat1_rads = lat1 * DEGREES_TO_RADS
    lon1_rads = lon1 * DEGREES_TO_RADS
    lat2_rads = lat2 * DEGREES_TO_RADS
    lon2_rads = lon2 * DEGREES_TO_RADS
    # haversine formula
    dlon = lon2_rads - lon1_rads
    dlat = lat2_rads - lat1_rads
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rads) * np.cos(lat2_rads) * np.sin(dlon / 2) ** 2
    c = 2 * np.arcsin(np.sqrt(a))
    return c * EARTH_RADIUS_M


def bearing(lon1, lat1, lon2, lat2):
    """
    Initial great circle bearing from point 1 to point 2, rounded to whole degrees in [0, 360).
    Coincident points give 0.
    """
    lon1_rads = lon1 * DEGREES_TO_RADS
    lat1_rads = lat1 * DEGREES_TO_RADS
    lon2_rads = lon2 * DEGREES_TO_RADS
    lat2_rads = lat2 * DEGREES_TO_RADS

    clat1 = np.cos(lat1_rads)
    clat2 = np.cos(lat2_rads)
    dlon = lon2_rads - lon1_rads

    y = np.sin(dlon) * clat2
    x = clat1 * np.sin(lat2_rads) - np.sin(lat1_rads) * clat2 * np.cos(dlon)
    if x == 0 and y == 0:
        return 0
    # atan2 lands in (-180, 180], shift before the modulus
    return int(360 + np.arctan2(y, x) * RADS_TO_DEGREES + 0.5) % 360


def sector_bisector(angle1, angle2):
    """
    Radial splitting the opening between two whole degree bearings.
    When the bearings are more than 180 degrees apart the plain mean points
    the wrong way, so it is flipped to the other side.
    """
    if angle1 == angle2:
        return angle1

    half_angle = int((angle1 + angle2) / 2.0)
    if abs(angle1 - angle2) > 180:
        half_angle = (half_angle + 180) % 360
    return half_angle


def sector_radials(half_angle, angle):
    """Start and finish radials of a sector of `angle` degrees centered on `half_angle`"""
    start_radial = int(360 + half_angle - angle / 2.0) % 360
    finish_radial = int(360 + half_angle + angle / 2.0) % 360
    return start_radial, finish_radial


def _split_degrees(value, parts_per_degree, decimals):
    """Split an absolute coordinate into whole degrees and the rounded remainder,
    carrying into the degrees when the remainder rounds up to a full degree"""
    value = abs(value)
    degrees = int(value)
    remainder = round((value - degrees) * parts_per_degree, decimals)
    if remainder >= parts_per_degree:
        degrees += 1
        remainder = 0
    return degrees, remainder


def coord_to_ddmmff(value, is_latitude):
    """
    Coordinate in the waypoint file notation, degrees and decimal minutes.
    Latitude: 46:12.345N, Longitude: 014:03.210E
    """
    degrees, minutes = _split_degrees(value, 60, 3)
    if is_latitude:
        hemisphere = "N" if value >= 0 else "S"
        return f"{degrees:02d}:{minutes:06.3f}{hemisphere}"
    hemisphere = "E" if value >= 0 else "W"
    return f"{degrees:03d}:{minutes:06.3f}{hemisphere}"


def coord_to_ddmmss(value, is_latitude):
    """
    Coordinate in the airspace file notation, degrees minutes and seconds.
    Latitude: 46:12:20 N, Longitude: 014:03:12 E
    """
    degrees, seconds = _split_degrees(value, 3600, 0)
    seconds = int(seconds)
    minutes, seconds = divmod(seconds, 60)
    if is_latitude:
        hemisphere = "N" if value >= 0 else "S"
        return f"{degrees:02d}:{minutes:02d}:{seconds:02d} {hemisphere}"
    hemisphere = "E" if value >= 0 else "W"
    return f"{degrees:03d}:{minutes:02d}:{seconds:02d} {hemisphere}"
