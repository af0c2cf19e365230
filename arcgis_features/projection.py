# ============================================================================
# MODULE CONTEXT - COORDINATE REPROJECTION
# ============================================================================
# STATUS: Standalone Module - Web Mercator to WGS84
# PURPOSE: Bring ArcGIS coordinates into GeoJSON longitude/latitude
# EXPORTS: transform_to_wgs84, web_mercator_to_wgs84, wkid_of, GEOGRAPHIC_WKIDS, WEB_MERCATOR_WKIDS
# DEPENDENCIES: math
# ============================================================================

"""
Coordinate reprojection to WGS84.

Only two families are handled:
- geographic (4326 WGS84, 4269 NAD83): returned unchanged
- Web Mercator (3857, and the legacy Esri code 102100): spherical inverse

Any other WKID is passed through unchanged with an ``unsupported_wkid``
diagnostic, so callers may receive projected coordinates.
"""

import math
from typing import Any, List, Optional, Sequence

from .diagnostics import DiagnosticCode, DiagnosticSink, default_sink
from .models import SpatialReference

# Half the equatorial circumference of the Web Mercator sphere, in metres
ORIGIN_SHIFT = 20037508.34

GEOGRAPHIC_WKIDS = frozenset({4326, 4269})
WEB_MERCATOR_WKIDS = frozenset({3857, 102100})


def web_mercator_to_wgs84(x: float, y: float) -> List[float]:
    """Inverse spherical Mercator for one ``(x, y)`` pair, returns ``[lng, lat]``."""
    lng = (x / ORIGIN_SHIFT) * 180
    try:
        growth = math.exp(y * math.pi / ORIGIN_SHIFT)
    except OverflowError:
        # y far beyond the projected extent; atan(inf) puts it on the pole
        growth = math.inf
    lat = (2 * math.atan(growth) - math.pi / 2) * (180 / math.pi)
    return [lng, lat]


def wkid_of(spatial_reference: Any) -> Optional[int]:
    if spatial_reference is None:
        return None
    if isinstance(spatial_reference, SpatialReference):
        return spatial_reference.effective_wkid
    if isinstance(spatial_reference, dict):
        wkid = spatial_reference.get("wkid")
        return wkid if wkid is not None else spatial_reference.get("latestWkid")
    return None


def transform_to_wgs84(
    coordinates: Sequence[Sequence[float]],
    spatial_reference: Any = None,
    diagnostics: Optional[DiagnosticSink] = None
) -> List[List[float]]:
    """
    Reproject a sequence of ``(x, y)`` pairs to WGS84.

    Args:
        coordinates: Vertices in the service's spatial reference
        spatial_reference: SpatialReference model, raw ``{wkid, latestWkid}`` dict, or None
        diagnostics: Sink for the "assumed WGS84" / "unsupported WKID" warnings

    Returns:
        New list of ``[x, y]`` (or ``[lng, lat]``) lists
    """
    sink = diagnostics or default_sink()
    wkid = wkid_of(spatial_reference)

    if wkid is None:
        sink.warn(DiagnosticCode.ASSUMED_WGS84, "No spatial reference, assuming WGS84")
        return [[c[0], c[1]] for c in coordinates]

    if wkid in GEOGRAPHIC_WKIDS:
        return [[c[0], c[1]] for c in coordinates]

    if wkid in WEB_MERCATOR_WKIDS:
        return [web_mercator_to_wgs84(c[0], c[1]) for c in coordinates]

    sink.warn(
        DiagnosticCode.UNSUPPORTED_WKID,
        f"Unsupported coordinate system WKID: {wkid}",
        wkid=wkid
    )
    return [[c[0], c[1]] for c in coordinates]
