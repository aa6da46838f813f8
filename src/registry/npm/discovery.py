"""Descriptor reader: raw package.json / registry document to PackageMetadata.

Several fields appear in incompatible shapes across the ecosystem. Each is
read by an ordered list of extractors; the first one that returns a value
wins. Extractors return ``None`` when their shape does not apply.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from errors import MalformedLocator, MissingRequiredField
from common.logging_utils import extra_context, is_debug_enabled
from repository.providers import issues_url_from_homepage
from repository.url_normalize import repository_to_uri

from ..models import PackageMetadata

logger = logging.getLogger(__name__)

Extractor = Callable[[Mapping[str, Any]], Any]


def first_of(doc: Mapping[str, Any], extractors: Sequence[Extractor]) -> Any:
    """Return the first non-None extractor result, or None."""
    for extractor in extractors:
        value = extractor(doc)
        if value is not None:
            return value
    return None


def _string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _url(value: Any) -> Optional[str]:
    text = _string(value)
    if text is None:
        return None
    try:
        parts = urlsplit(text.strip())
    except ValueError:
        return None
    return text.strip() if parts.scheme in ("http", "https") and parts.netloc else None


def _field(name: str, parse: Callable[[Any], Optional[str]] = _string) -> Extractor:
    return lambda doc: parse(doc.get(name))


def _nested(name: str, sub: str, parse: Callable[[Any], Optional[str]] = _string) -> Extractor:
    def extract(doc: Mapping[str, Any]) -> Optional[str]:
        value = doc.get(name)
        return parse(value.get(sub)) if isinstance(value, dict) else None
    return extract


def _homepage(doc: Mapping[str, Any]) -> Optional[str]:
    return _url(doc.get("homepage"))


def _issues_from_homepage(doc: Mapping[str, Any]) -> Optional[str]:
    return issues_url_from_homepage(_homepage(doc))


REPOSITORY_EXTRACTORS: Sequence[Extractor] = (
    _field("repository"),
    _nested("repository", "url"),
)

BUGS_EXTRACTORS: Sequence[Extractor] = (
    _field("bugs", _url),
    _nested("bugs", "url", _url),
    _issues_from_homepage,
)


def _license_list(doc: Mapping[str, Any]) -> Optional[Tuple[str, ...]]:
    value = doc.get("license")
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    return None


def _license_string(doc: Mapping[str, Any]) -> Optional[Tuple[str, ...]]:
    value = doc.get("license")
    return (value,) if isinstance(value, str) else None


def _license_object(doc: Mapping[str, Any]) -> Optional[Tuple[str, ...]]:
    value = doc.get("license")
    if isinstance(value, dict) and isinstance(value.get("type"), str):
        return (value["type"],)
    return None


def _licenses_objects(doc: Mapping[str, Any]) -> Optional[Tuple[str, ...]]:
    value = doc.get("licenses")
    if not isinstance(value, list):
        return None
    types = []
    for entry in value:
        if not isinstance(entry, dict) or not isinstance(entry.get("type"), str):
            return None
        types.append(entry["type"])
    return tuple(types)


LICENSE_EXTRACTORS: Sequence[Extractor] = (
    _license_list,
    _license_string,
    _license_object,
    _licenses_objects,
)


def _string_map(doc: Mapping[str, Any], name: str) -> Dict[str, str]:
    value = doc.get(name)
    if isinstance(value, dict) and all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
        return dict(value)
    return {}


def _required(doc: Mapping[str, Any], name: str) -> str:
    value = doc.get(name)
    if not isinstance(value, str) or not value:
        raise MissingRequiredField(name, doc)
    return value


def read_descriptor(
    raw: Any,
    source_uri: Optional[str] = None,
    fork_source_uri: Optional[str] = None,
) -> PackageMetadata:
    """Validate a raw descriptor into PackageMetadata.

    Args:
        raw: Parsed package.json or registry version document
        source_uri: Caller override for the repository URI (highest precedence)
        fork_source_uri: Canonical git URL when the package came from a git locator

    Raises:
        MissingRequiredField: name, version or repository missing
        MalformedLocator: repository present but not a parseable URI
    """
    if not isinstance(raw, dict):
        raise MissingRequiredField("name", raw, "descriptor is not a JSON object")

    name = _required(raw, "name")
    version = _required(raw, "version")

    repository = source_uri or fork_source_uri or first_of(raw, REPOSITORY_EXTRACTORS)
    if repository is None:
        raise MissingRequiredField("repository", raw, f"{name}@{version} declares no repository")
    try:
        source_connection_uri = repository_to_uri(repository)
    except MalformedLocator:
        logger.warning(
            "Unparseable repository",
            extra=extra_context(
                event="validation", component="discovery", action="read_descriptor",
                outcome="malformed_locator", target=repository,
            ),
        )
        raise

    licenses = first_of(raw, LICENSE_EXTRACTORS) or ()
    dependencies = _string_map(raw, "dependencies")
    optional_dependencies = _string_map(raw, "optionalDependencies")
    dependencies = {k: v for k, v in dependencies.items() if k not in optional_dependencies}

    metadata = PackageMetadata(
        name=name,
        version=version,
        homepage_url=_homepage(raw),
        source_connection_uri=source_connection_uri,
        issues_url=first_of(raw, BUGS_EXTRACTORS),
        licenses=tuple(licenses),
        dependencies=dependencies,
        optional_dependencies=optional_dependencies,
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Descriptor read",
            extra=extra_context(
                event="parse", component="discovery", action="read_descriptor",
                outcome="success", target=f"{name}@{version}",
            ),
        )
    return metadata
