"""Resolution of image URLs to cache keys and local file paths.

The rules in this module decide where an image lands on disk. Files cached
by earlier versions are found again only if the derivation stays exactly
the same, so the hashing details below are part of the on-disk format:

* the host bucket is the sanitized host plus ``sha1(host)``;
* the cache key is ``sha1(dir + filename + ext + query)`` plus the
  resolved extension;
* formula URLs (``cgi-bin/math.cgi?``) hash their query part with two
  Java-style string hashes instead.
"""

import hashlib
import re
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import parse_qsl, quote, urlsplit

IMAGE_TYPES = ("png", "jpeg", "jpg", "gif", "bmp", "tiff", "tif")
DEFAULT_IMAGE_TYPE = "jpg"
FORMULA_MARKER = "cgi-bin/math.cgi?"

_DEFAULT_PORTS = {"http": "80", "https": "443"}
# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"
_HOST_UNSAFE = re.compile(r"[^a-z0-9_]")

QueryPolicy = bool | Iterable[str] | None


def is_cacheable(url: object) -> bool:
    """Return True when ``url`` is an http(s) URL string."""
    if not isinstance(url, str):
        return False
    lowered = url.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def _host(netloc: str, scheme: str) -> str:
    host = netloc.rpartition("@")[2].lower()
    default_port = _DEFAULT_PORTS.get(scheme)
    if default_port and host.endswith(f":{default_port}"):
        host = host[: -len(default_port) - 1]
    return host.rstrip(":")


def _parse_query(query: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for name, value in parse_qsl(query, keep_blank_values=True):
        # first occurrence wins
        params.setdefault(name, value)
    return params


def _select_params(params: dict[str, str], policy: QueryPolicy) -> dict[str, str]:
    if policy is True:
        return params
    if not policy:
        return {}
    if isinstance(policy, str):
        policy = (policy,)
    return {name: params[name] for name in policy if name in params}


def _encode_query(params: dict[str, str]) -> str:
    return "&".join(
        f"{quote(name, safe=_URI_COMPONENT_SAFE)}={quote(value, safe=_URI_COMPONENT_SAFE)}"
        for name, value in params.items()
    )


def canonicalize(url: str, use_query_params_in_cache_key: QueryPolicy = False) -> str:
    """Return the URL reduced to the parts used as the record key.

    Args:
        url: Absolute http(s) URL
        use_query_params_in_cache_key: ``False`` drops the query, ``True``
            keeps every parameter, a name or a collection of names keeps only those
            (in the order given)

    Returns:
        ``scheme://host[:port]path[?query]`` with user info and fragment removed
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    path = parts.path or "/"
    params = _select_params(_parse_query(parts.query), use_query_params_in_cache_key)

    canonical = f"{scheme}://{_host(parts.netloc, scheme)}{path}"
    if params:
        canonical += f"?{_encode_query(params)}"
    return canonical


def _sha1(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def _utf16_units(text: str) -> list[int]:
    encoded = text.encode("utf-16-le")
    return [int.from_bytes(encoded[i : i + 2], "little") for i in range(0, len(encoded), 2)]


def _string_hash(units: list[int]) -> int:
    """Java ``String.hashCode`` over UTF-16 code units, as a signed 32-bit int."""
    h = 0
    for unit in units:
        h = (31 * h + unit) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def _formula_hash(url: str) -> str:
    units = _utf16_units(url[url.index(FORMULA_MARKER) :])
    middle = len(units) // 2
    return str(_string_hash(units[:middle]) + _string_hash(units[middle:]))


def _host_bucket(url: str) -> str:
    parts = urlsplit(url)
    host = _host(parts.netloc, parts.scheme.lower())
    # one underscore per UTF-16 code unit
    sanitized = _HOST_UNSAFE.sub(
        lambda match: "_" * (2 if ord(match.group()) > 0xFFFF else 1),
        host.replace(".:", "_"),
    )
    return f"{sanitized}_{_sha1(host)}"


def _cache_key(url: str) -> str:
    parts = urlsplit(url)
    directory, _, file_name = (parts.path or "/").rpartition("/")

    name_parts = file_name.split(".")
    file_type = name_parts[-1].lower() if len(name_parts) > 1 else ""
    image_type = file_type if file_type in IMAGE_TYPES else DEFAULT_IMAGE_TYPE

    if FORMULA_MARKER in url:
        suffix = _formula_hash(url)
    else:
        params = _parse_query(parts.query)
        suffix = ",".join(params[name] for name in sorted(params))

    return f"{_sha1(directory + file_name + image_type + suffix)}.{image_type}"


def derive_relative_path(url: str) -> tuple[str, str]:
    """Split a (canonical) URL into its host bucket and cache key.

    Every query parameter present in ``url`` takes part in the key, so
    callers pass the canonical URL to apply their parameter policy.
    Parameter order does not affect the result.

    Returns:
        ``(host_bucket, cache_key)``, e.g.
        ``("example_com_<sha1>", "<sha1>.png")``
    """
    return _host_bucket(url), _cache_key(url)


def relative_file_path(url: str) -> str:
    """Return ``<host_bucket>/<cache_key>`` for a URL."""
    host_bucket, cache_key = derive_relative_path(url)
    return f"{host_bucket}/{cache_key}"


def image_file_path(url: str, cache_location: Path) -> Path:
    """Return the absolute location of a URL's cached image."""
    return Path(cache_location) / relative_file_path(url)
