"""
Transit data fetching service for the bus position tracker
Handles API calls to the jaha.com.py line list and bus position endpoints
"""

import logging
from typing import List

import requests

from bus_tracker.exceptions import UpstreamError

# Get logger
logger = logging.getLogger(__name__)


class TransitDataFetcher:
    """Handles fetching data from the jaha.com.py transit API"""

    def __init__(self, base_url: str = 'https://www.jaha.com.py', timeout: float = 10.0,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'Bus-Position-Tracker/1.0'
        })

    @property
    def lines_url(self) -> str:
        return f"{self.base_url}/bus/lineas"

    @property
    def positions_url(self) -> str:
        return f"{self.base_url}/api/posicionColectivos"

    def _json_list(self, response: requests.Response, context: str) -> List[dict]:
        try:
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            raise UpstreamError(f"{context}: HTTP {response.status_code}") from e
        except ValueError as e:
            raise UpstreamError(f"{context}: invalid JSON body") from e

        if not isinstance(data, list):
            raise UpstreamError(f"{context}: expected a list, got {type(data).__name__}")
        return data

    def fetch_lines(self) -> List[dict]:
        """Fetch the list of known bus lines"""
        try:
            response = self.session.get(self.lines_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"bus lines request failed: {e}") from e

        lines = self._json_list(response, 'bus lines')
        logger.info(f"Fetched {len(lines)} bus lines")
        return lines

    def fetch_positions(self, line_id) -> List[dict]:
        """Fetch current bus positions for one line"""
        try:
            response = self.session.post(self.positions_url, params={'linea': line_id}, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"positions request for linea {line_id} failed: {e}") from e

        positions = self._json_list(response, f"positions for linea {line_id}")
        logger.debug(f"Linea {line_id}: {len(positions)} positions")
        return positions
