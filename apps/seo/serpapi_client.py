"""
HTTP calls to SerpApi and the OpenCage geocoder.
"""
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SERPAPI_URL = 'https://serpapi.com/search.json'
OPENCAGE_URL = 'https://api.opencagedata.com/geocode/v1/json'


class ExternalServiceError(Exception):
    """A third-party API failed or answered with something unusable."""


def _error_detail(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        status = body.get('status')
        if isinstance(status, dict) and status.get('message'):
            return status['message']
        return body.get('error') or body.get('message') or str(body)[:200]
    return str(body)[:200]


def _get_json(url: str, params: dict, service: str) -> dict:
    try:
        response = requests.get(url, params=params, timeout=settings.SEO_API_TIMEOUT)
    except requests.RequestException as e:
        raise ExternalServiceError(f"{service} request failed: {e}") from e

    if response.status_code != 200:
        raise ExternalServiceError(
            f"{service} error: {response.status_code} - {_error_detail(response)}"
        )
    try:
        return response.json()
    except ValueError as e:
        raise ExternalServiceError(f"{service} returned invalid JSON") from e


def google_domain(country: str) -> str:
    country = (country or 'us').lower()
    return 'google.com' if country == 'us' else f'google.{country}'


def search_google(keyword: str, country: str, api_key: str) -> dict:
    """Top 100 organic Google results for a keyword."""
    return _get_json(SERPAPI_URL, {
        'engine': 'google',
        'q': keyword,
        'google_domain': google_domain(country),
        'hl': 'en',
        'num': '100',
        'api_key': api_key,
    }, 'SerpApi')


def maps_ll(lat: float, lng: float, zoom: int = 14) -> str:
    return f"@{lat:.7f},{lng:.7f},{zoom}z"


def search_maps(query: str, lat: float, lng: float, api_key: str) -> dict:
    """Google Maps local results as seen from one coordinate."""
    return _get_json(SERPAPI_URL, {
        'engine': 'google_maps',
        'q': query,
        'll': maps_ll(lat, lng),
        'google_domain': 'google.com',
        'hl': 'en',
        'type': 'search',
        'api_key': api_key,
    }, 'SerpApi')


def geocode(address: str, api_key: str) -> dict:
    """
    Resolve an address with OpenCage.

    Returns:
        {"lat": float, "lng": float, "formatted": str}
    """
    data = _get_json(OPENCAGE_URL, {'q': address, 'key': api_key}, 'OpenCage API')
    results = data.get('results') or []
    if not results:
        raise ExternalServiceError("No results from OpenCage API")

    first = results[0]
    return {
        'lat': float(first['geometry']['lat']),
        'lng': float(first['geometry']['lng']),
        'formatted': first.get('formatted', address),
    }
