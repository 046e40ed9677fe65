"""
Biz bundle resolution and manifest parsing.

A bundle is a jar whose name ends with BIZ_BUNDLE_SUFFIX. It is either
given explicitly (local path or URL) or searched for in the build output.
Whatever the source, it is normalized to a URL before parsing.
"""

import logging
import os
import re
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote, unquote, urlparse

import httpx

from arkctl.modules.api import BizModel, ParseError, ResolutionError

logger = logging.getLogger("arkctl.bundle")

BIZ_BUNDLE_SUFFIX = "-ark-biz.jar"
MANIFEST_PATH = "META-INF/MANIFEST.MF"
BIZ_NAME_ATTRIBUTE = "Ark-Biz-Name"
BIZ_VERSION_ATTRIBUTE = "Ark-Biz-Version"

_URL_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_REMOTE_SCHEMES = ("http", "https")


def find_bundle(search_dir: str) -> Path:
    """
    Walk search_dir recursively for a biz bundle.

    When several bundles exist, the last one met in walk order wins.
    Walk order is whatever the filesystem yields; callers must not rely on it.

    Raises:
        ResolutionError: no bundle under search_dir
    """
    found: Optional[Path] = None
    for root, _dirs, files in os.walk(search_dir):
        for filename in files:
            if not filename.endswith(BIZ_BUNDLE_SUFFIX):
                continue
            candidate = Path(root) / filename
            if candidate.is_file():
                found = candidate

    if found is None:
        raise ResolutionError(f"bundle not found: no *{BIZ_BUNDLE_SUFFIX} under {search_dir}")

    logger.debug(f"Found bundle {found}")
    return found


def file_url(path_or_url: str) -> str:
    """
    Normalize a local path or URL into a URL; local paths become file:// URLs.

    The path is percent-encoded so url_to_path() gives it back unchanged.
    """
    if _URL_PATTERN.match(path_or_url):
        return path_or_url
    return "file://" + quote(os.path.abspath(os.path.expanduser(path_or_url)))


def url_to_path(url: str) -> Path:
    """Local filesystem path of a file:// URL."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise ValueError(f"not a file url: {url}")
    return Path(unquote(parsed.path))


def resolve_bundle_url(bundle: Optional[str], build_dir: Optional[str]) -> str:
    """
    Decide which bundle to deploy.

    An explicit bundle is used as-is (normalized, never searched). Otherwise
    the build directory, or the current directory when empty, is searched.
    """
    if bundle:
        return file_url(bundle)
    search_dir = build_dir or os.getcwd()
    return file_url(str(find_bundle(search_dir)))


def parse_manifest(text: str) -> Dict[str, str]:
    """
    Parse jar manifest main attributes.

    Lines starting with a single space continue the previous value.
    Parsing stops at the first blank line that follows attributes.
    """
    attributes: Dict[str, str] = {}
    current: Optional[str] = None
    for line in text.splitlines():
        if line.startswith(" ") and current is not None:
            attributes[current] += line[1:]
            continue
        if not line.strip():
            if attributes:
                break
            continue
        key, sep, value = line.partition(":")
        if not sep:
            current = None
            continue
        current = key.strip()
        attributes[current] = value.strip()
    return attributes


def read_biz_model(jar_path: Path, biz_url: str) -> BizModel:
    """
    Read name and version from a bundle on disk.

    Raises:
        ParseError: missing file, not a zip, no manifest, or missing attributes
    """
    try:
        with zipfile.ZipFile(jar_path) as jar:
            raw = jar.read(MANIFEST_PATH)
    except FileNotFoundError as e:
        raise ParseError(f"bundle {jar_path} does not exist") from e
    except zipfile.BadZipFile as e:
        raise ParseError(f"bundle {jar_path} is not a valid jar: {e}") from e
    except KeyError as e:
        raise ParseError(f"bundle {jar_path} has no {MANIFEST_PATH}") from e
    except OSError as e:
        raise ParseError(f"failed to read bundle {jar_path}: {e}") from e

    attributes = parse_manifest(raw.decode("utf-8", errors="replace"))
    missing = [a for a in (BIZ_NAME_ATTRIBUTE, BIZ_VERSION_ATTRIBUTE) if not attributes.get(a)]
    if missing:
        raise ParseError(f"bundle {jar_path} manifest lacks {', '.join(missing)}")

    return BizModel(
        biz_name=attributes[BIZ_NAME_ATTRIBUTE],
        biz_version=attributes[BIZ_VERSION_ATTRIBUTE],
        biz_url=biz_url,
    )


async def download_bundle(
    url: str,
    dest_dir: str,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """
    Download a remote bundle into dest_dir.

    Raises:
        ParseError: the bundle could not be fetched or written
    """
    filename = os.path.basename(urlparse(url).path) or f"bundle{BIZ_BUNDLE_SUFFIX}"
    target = Path(dest_dir) / filename
    logger.info(f"Downloading bundle from {url}")
    try:
        async with httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(target, "wb") as fh:
                    async for chunk in response.aiter_bytes():
                        fh.write(chunk)
    except httpx.HTTPError as e:
        raise ParseError(f"failed to download bundle {url}: {e}") from e
    except OSError as e:
        raise ParseError(f"failed to write bundle {url} to {target}: {e}") from e
    return target


async def parse_biz_model(
    url: str,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BizModel:
    """
    Parse a bundle URL into a BizModel.

    file:// bundles are read in place; http(s):// bundles are downloaded to
    a temporary directory first. The BizModel keeps the remote URL.

    Raises:
        ParseError: unsupported scheme, unreadable or malformed bundle
    """
    scheme = urlparse(url).scheme
    if scheme == "file":
        return read_biz_model(url_to_path(url), url)
    if scheme in _REMOTE_SCHEMES:
        with tempfile.TemporaryDirectory(prefix="arkctl-") as tmp:
            jar_path = await download_bundle(url, tmp, timeout=timeout, transport=transport)
            return read_biz_model(jar_path, url)
    raise ParseError(f"unsupported bundle url scheme {scheme!r}: {url}")
