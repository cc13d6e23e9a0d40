"""
Google Maps rank heatmap.

Geocodes a business address, lays a square grid of points around it and
asks SerpApi where the business appears in the local results seen from
each point.
"""
import logging
import math
import time
from typing import Dict, List

from django.conf import settings

from . import api_key_service
from .serpapi_client import geocode, search_maps, maps_ll, ExternalServiceError

logger = logging.getLogger(__name__)

# Grid label -> (radius miles, cell size miles)
GRID_SIZES: Dict[str, tuple] = {
    '0.7x0.7': (0.35, 0.35),
    '1.75x1.75': (0.875, 0.875),
    '3.5x3.5': (1.75, 1.75),
    '5.25x5.25': (2.625, 2.625),
    '7x7': (3.5, 3.5),
    '14x14': (7, 7),
    '21x21': (10.5, 10.5),
}

MILES_PER_DEGREE = 69


def grid_sizes() -> List[dict]:
    return [
        {
            'size': size,
            'radius_miles': radius,
            'cell_size_miles': cell,
            'description': f"{size} mile grid with {radius} mile radius",
        }
        for size, (radius, cell) in GRID_SIZES.items()
    ]


def _lat_delta(miles: float) -> float:
    return miles / MILES_PER_DEGREE


def _lng_delta(miles: float, lat: float) -> float:
    return miles / (MILES_PER_DEGREE * max(0.000001, math.cos(math.radians(lat))))


def generate_grid(lat: float, lng: float, radius_miles: float, cell_miles: float) -> List[dict]:
    """
    Points covering a square of +-radius around the center, one per cell.

    Ids are 1-based strings in row-major order.
    """
    step_lat = _lat_delta(cell_miles)
    step_lng = _lng_delta(cell_miles, lat)
    lat_min, lat_max = lat - _lat_delta(radius_miles), lat + _lat_delta(radius_miles)
    lng_min, lng_max = lng - _lng_delta(radius_miles, lat), lng + _lng_delta(radius_miles, lat)

    points = []
    row = 0
    point_lat = lat_min
    while point_lat <= lat_max + 1e-12:
        col = 0
        point_lng = lng_min
        while point_lng <= lng_max + 1e-12:
            points.append({
                'id': str(len(points) + 1),
                'lat': point_lat,
                'lng': point_lng,
                'row': row,
                'col': col,
            })
            point_lng += step_lng
            col += 1
        point_lat += step_lat
        row += 1
    return points


def find_rank(local_results, business_name: str):
    """1-based position of the first local result whose title contains the name."""
    needle = business_name.lower()
    for index, result in enumerate(local_results or []):
        title = result.get('title') if isinstance(result, dict) else None
        if title and needle in title.lower():
            return index + 1
    return None


def run_analysis(business_address: str, keyword: str, target_business_name: str, grid_size: str) -> dict:
    """
    Build the heatmap.

    Calls for the whole grid are reserved on one key before the first
    search; the calls for points that failed are released afterwards, so
    the key ends up charged for the successful searches only.

    Raises:
        ValueError: unknown grid size.
        RuntimeError: OpenCage key missing.
        NoAvailableApiKeyError: no key can afford the grid.
        ExternalServiceError: geocoding failed.
    """
    if grid_size not in GRID_SIZES:
        raise ValueError(f"Invalid grid size. Available sizes: {', '.join(GRID_SIZES)}")
    if not settings.OPENCAGE_API_KEY:
        raise RuntimeError("OpenCage API key not configured")

    center = geocode(business_address, settings.OPENCAGE_API_KEY)
    radius, cell = GRID_SIZES[grid_size]
    points = generate_grid(center['lat'], center['lng'], radius, cell)

    api_key = api_key_service.reserve_api_key(len(points))
    failed_calls = 0
    ranking_points = []
    try:
        for index, point in enumerate(points):
            rank = None
            try:
                results = search_maps(keyword, point['lat'], point['lng'], api_key)
                rank = find_rank(results.get('local_results'), target_business_name)
            except ExternalServiceError as e:
                failed_calls += 1
                logger.warning(f"Heatmap search failed at point {point['id']}: {e}")

            ranking_points.append({
                'id': point['id'],
                'lat': round(point['lat'], 7),
                'lng': round(point['lng'], 7),
                'll': maps_ll(point['lat'], point['lng']),
                'rank': rank,
            })

            if index < len(points) - 1 and settings.SEO_RATE_LIMIT_DELAY > 0:
                time.sleep(settings.SEO_RATE_LIMIT_DELAY)
    finally:
        unused = failed_calls + (len(points) - len(ranking_points))
        if unused:
            api_key_service.release_api_key(api_key, unused)

    logger.info(
        f"Heatmap for '{keyword}' finished: {len(points) - failed_calls}/{len(points)} searches succeeded"
    )
    return {
        'query': keyword,
        'center': {
            'lat': round(center['lat'], 7),
            'lng': round(center['lng'], 7),
        },
        'points': ranking_points,
    }
