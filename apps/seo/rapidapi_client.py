"""
Thin proxy over the RapidAPI SEO data providers.

Responses are passed through unchanged; a non-2xx answer or a network
failure raises ExternalServiceError.
"""
import logging

import requests
from django.conf import settings
from django.utils import timezone

from .serpapi_client import ExternalServiceError

logger = logging.getLogger(__name__)


def _headers(host: str, content_type: str = None) -> dict:
    headers = {
        'x-rapidapi-key': settings.RAPIDAPI_KEY,
        'x-rapidapi-host': host,
    }
    if content_type:
        headers['Content-Type'] = content_type
    return headers


def _request(method: str, host: str, path: str, **kwargs):
    url = f"https://{host}{path}"
    try:
        response = requests.request(method, url, timeout=settings.SEO_API_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise ExternalServiceError(f"RapidAPI request failed: {e}") from e

    if not response.ok:
        raise ExternalServiceError(
            f"RapidAPI request failed: {response.status_code} {response.reason}"
        )
    try:
        return response.json()
    except ValueError as e:
        raise ExternalServiceError("RapidAPI returned invalid JSON") from e


# =============================================================================
# DataForSEO host
# =============================================================================

def url_metrics(url: str):
    host = settings.RAPIDAPI_HOST
    return _request('GET', host, '/url-metrics', params={'url': url}, headers=_headers(host))


def keyword_metrics(keyword: str, country: str = 'us'):
    host = settings.RAPIDAPI_HOST
    return _request(
        'GET', host, '/keyword-metrics',
        params={'keyword': keyword, 'country': country},
        headers=_headers(host),
    )


def keyword_generator(keyword: str, country: str = 'us'):
    host = settings.RAPIDAPI_HOST
    return _request(
        'GET', host, '/keyword-generator',
        params={'keyword': keyword, 'country': country},
        headers=_headers(host),
    )


def health() -> dict:
    """
    Probe the provider with a throwaway keyword lookup.

    A 429 still counts as healthy: the API answered, we are just throttled.
    Network failures propagate as ExternalServiceError.
    """
    host = settings.RAPIDAPI_HOST
    try:
        response = requests.get(
            f"https://{host}/keyword-metrics",
            params={'keyword': 'test', 'country': 'us'},
            headers=_headers(host),
            timeout=settings.SEO_API_TIMEOUT,
        )
    except requests.RequestException as e:
        raise ExternalServiceError(str(e)) from e

    healthy = response.status_code in (200, 429)
    return {
        'status': 'healthy' if healthy else 'unhealthy',
        'rapidApiConnected': healthy,
        'timestamp': timezone.now().isoformat(),
        'apiHost': host,
    }


# =============================================================================
# Backlinks host
# =============================================================================

def _seolizer(approute: str, domain: str):
    host = settings.RAPIDAPI_BACKLINKS_HOST
    return _request(
        'POST', host, '/seolizer',
        json={'approute': approute, 'domain': domain},
        headers=_headers(host, 'application/json'),
    )


def domain_backlinks(domain: str):
    return _seolizer('domain_backlinks', domain)


def domain_keywords(domain: str):
    return _seolizer('domain_keywords', domain)


# =============================================================================
# Rank checker host
# =============================================================================

def google_rank_check(keyword: str, url: str, country: str = 'us', check_id: str = 'google-serp'):
    host = settings.RAPIDAPI_RANK_CHECKER_HOST
    return _request(
        'POST', host, '/id',
        params={'keyword': keyword, 'url': url, 'country': country, 'id': check_id},
        data='rank check request',
        headers=_headers(host, 'text/plain'),
    )
