"""Version ordering used by effective-version resolution.

Versions shaped like ``v1.2.3``, ``v1.2.3-rc.1`` or ``v2.0.0+incompatible``
compare by numeric release first (``v1.10.0`` > ``v1.9.0``), then by
prerelease, where a release beats any of its prereleases. Build metadata
only breaks ties. Anything else falls back to plain lexical comparison of
the two strings.
"""

from __future__ import annotations

import re

_SEMVER = re.compile(
    r"^v?(?P<release>\d+(?:\.\d+)*)"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _release_tuple(release: str, width: int) -> tuple[int, ...]:
    parts = tuple(int(part) for part in release.split("."))
    return parts + (0,) * (width - len(parts))


def _identifier_key(ident: str) -> tuple[int, int, str]:
    # numeric identifiers sort before alphanumeric ones
    if ident.isdigit():
        return (0, int(ident), "")
    return (1, 0, ident)


def _compare_prerelease(a: str | None, b: str | None) -> int:
    if a == b:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    ka = [_identifier_key(i) for i in a.split(".")]
    kb = [_identifier_key(i) for i in b.split(".")]
    return _cmp(ka, kb)


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as ``a`` is older than, equal to or newer than ``b``."""
    ma = _SEMVER.match(a)
    mb = _SEMVER.match(b)
    if ma is None or mb is None:
        return _cmp(a, b)

    width = max(ma["release"].count("."), mb["release"].count(".")) + 1
    result = _cmp(_release_tuple(ma["release"], width), _release_tuple(mb["release"], width))
    if result:
        return result
    result = _compare_prerelease(ma["pre"], mb["pre"])
    if result:
        return result
    return _cmp(ma["build"] or "", mb["build"] or "")


def version_greater(a: str, b: str) -> bool:
    return compare_versions(a, b) > 0
