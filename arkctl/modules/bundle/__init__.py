"""
Bundle Module - Black Box Interface

Purpose: Locate the biz bundle and parse it into a BizModel
Interface: find_bundle(), file_url(), resolve_bundle_url(), parse_biz_model()
Hidden: Directory walking, jar manifest format, remote download
"""

from .resolver import (
    BIZ_BUNDLE_SUFFIX,
    file_url,
    find_bundle,
    parse_biz_model,
    parse_manifest,
    resolve_bundle_url,
    url_to_path,
)

__all__ = [
    "BIZ_BUNDLE_SUFFIX",
    "file_url",
    "find_bundle",
    "parse_biz_model",
    "parse_manifest",
    "resolve_bundle_url",
    "url_to_path",
]
