"""Field mapping fetcher."""

import logging
from typing import Dict, Optional

import requests

from .config import DEFAULT_FIELD_MAPPINGS, FIELD_MAPPINGS_TIMEOUT, FIELD_MAPPINGS_URL
from .events import EventLog

logger = logging.getLogger(__name__)


class FieldMappingClient:
    """Fetches the flat header mapping from the mapping service."""

    def __init__(
        self,
        url: str = FIELD_MAPPINGS_URL,
        timeout: float = FIELD_MAPPINGS_TIMEOUT,
        session=None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch(self) -> Optional[Dict[str, str]]:
        """
        Fetch the mapping once, without retrying.

        Returns:
            {raw header: canonical field}, or None if the service is unreachable
            or answers with something other than a flat string dictionary.
        """
        logger.debug(f"Fetching field mappings from {self.url}")
        try:
            response = self._session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch field mappings from {self.url}: {e}")
            return None

        if not isinstance(payload, dict):
            logger.error(f"Field mappings payload is {type(payload).__name__}, expected an object")
            return None

        mappings = {
            str(raw): str(canonical)
            for raw, canonical in payload.items()
            if isinstance(raw, str) and isinstance(canonical, str) and raw and canonical
        }
        if len(mappings) != len(payload):
            dropped = len(payload) - len(mappings)
            logger.warning(f"Dropped {dropped} malformed field mapping entries")
        return mappings or None


def load_field_mappings(
    client: Optional[FieldMappingClient] = None,
    use_fallback: bool = True,
    events: Optional[EventLog] = None,
) -> Optional[Dict[str, str]]:
    """
    Load field mappings, substituting the built-in table when the service fails.

    Args:
        client: Mapping client; a default one is created if omitted.
        use_fallback: Return DEFAULT_FIELD_MAPPINGS instead of None on failure.
        events: Event log for diagnostics and notifications.

    Returns:
        The mapping dictionary, or None if unavailable and no fallback allowed.
    """
    client = client or FieldMappingClient()
    events = events or EventLog(component="mappingClient")

    mappings = client.fetch()
    if mappings:
        events.info(
            "Field mappings loaded", action="load_field_mappings", fieldsCount=len(mappings)
        )
        return mappings

    events.error("Field mappings unavailable", action="load_field_mappings_error", url=client.url)
    if not use_fallback:
        events.notify("Field mappings could not be loaded", "warning")
        return None

    events.notify("Using default field mappings", "warning")
    return dict(DEFAULT_FIELD_MAPPINGS)
