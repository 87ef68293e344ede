"""
Request signing for the PTV Timetable API.

Every request carries the developer id in its query string and an HMAC-SHA1
signature of the path plus query, keyed with the developer's API key.
"""

import hashlib
import hmac
from typing import Any, Dict, Tuple
from urllib.parse import urlencode


def build_query(params: Dict[str, Any]) -> str:
    """
    Build a canonical query string with keys in sorted order.

    None values are dropped, booleans are rendered lower-case and lists are
    joined with commas.

    Returns:
        str: "?a=1&b=2" or "" when there are no parameters
    """
    items = []
    for key in sorted(params):
        value = params[key]
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        items.append((key, str(value)))
    query = urlencode(items)
    return f"?{query}" if query else ""


def sign_path(path_with_query: str, api_key: str) -> str:
    """Lower-case hex HMAC-SHA1 of the path and query."""
    digest = hmac.new(
        api_key.encode("utf-8"), path_with_query.encode("utf-8"), hashlib.sha1
    )
    return digest.hexdigest()


def build_signed_path(path: str, params: Dict[str, Any], dev_id: str, api_key: str) -> Tuple[str, str]:
    """
    Build a signed request path.

    Args:
        path: API path such as "/v3/departures/route_type/0/stop/1071"
        params: Query parameters (without devid)
        dev_id: PTV developer id
        api_key: PTV signing key

    Returns:
        (path_with_query, signature)
    """
    path_with_query = f"{path}{build_query({**params, 'devid': dev_id})}"
    return path_with_query, sign_path(path_with_query, api_key)


def build_signed_url(base_url: str, path: str, params: Dict[str, Any], dev_id: str, api_key: str) -> str:
    """Full request URL including the signature parameter."""
    path_with_query, signature = build_signed_path(path, params, dev_id, api_key)
    return f"{base_url}{path_with_query}&signature={signature}"
