"""Rate-limit quota headers.

The platform reports token quotas as
``b=per_hour;q=100;r=99;t=3600,b=per_day;q=1000;r=999;t=86400``.
"""

from __future__ import annotations

from collections.abc import Mapping

from .models import TokenQuotaBucket, TokenQuotaLimit

CLIENT_QUOTA_HEADER = "auth0-client-quota-limit"
ORGANIZATION_QUOTA_HEADER = "auth0-organization-quota-limit"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # plain dicts are case-sensitive; httpx.Headers is not
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
    return value or None


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def parse_quota(value: str) -> TokenQuotaBucket:
    """Parse a quota header value into hourly and daily windows."""
    per_hour: TokenQuotaLimit | None = None
    per_day: TokenQuotaLimit | None = None

    for part in value.split(","):
        attributes = part.split(";")
        fields = {"q": 0, "r": 0, "t": 0}
        for attribute in attributes:
            key, _, raw = attribute.partition("=")
            key, raw = key.strip(), raw.strip()
            if key in fields and raw:
                fields[key] = _to_int(raw)

        limit = TokenQuotaLimit(quota=fields["q"], remaining=fields["r"], reset_after=fields["t"])
        if "per_hour" in attributes[0]:
            per_hour = limit
        elif "per_day" in attributes[0]:
            per_day = limit

    return TokenQuotaBucket(per_hour=per_hour, per_day=per_day)


def get_client_quota_limit(headers: Mapping[str, str]) -> TokenQuotaBucket | None:
    """Client token quota from response headers, if reported."""
    value = _header(headers, CLIENT_QUOTA_HEADER)
    return parse_quota(value) if value else None


def get_organization_quota_limit(headers: Mapping[str, str]) -> TokenQuotaBucket | None:
    """Organization token quota from response headers, if reported."""
    value = _header(headers, ORGANIZATION_QUOTA_HEADER)
    return parse_quota(value) if value else None
