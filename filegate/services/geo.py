import logging

import requests

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "unknown"


def ip_to_location(ip: str, url_template: str, timeout: float = 3.0) -> str:
    """Return "City, Region, Country" for *ip*, or "unknown".

    The lookup is best effort: it never raises.
    """
    if not ip:
        return UNKNOWN_LOCATION

    try:
        response = requests.get(url_template.format(ip=ip), timeout=timeout)
        if response.status_code != 200:
            logger.info("geolocation_failed ip=%s status=%d", ip, response.status_code)
            return UNKNOWN_LOCATION
        data = response.json()
        return "%s, %s, %s" % (
            data.get("city", ""),
            data.get("region", ""),
            data.get("country", ""),
        )
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.info("geolocation_failed ip=%s error=%s", ip, exc)
        return UNKNOWN_LOCATION
