"""NPM registry source and package.json descriptor reader."""

from .client import NpmRegistryClient, is_scoped, registry_metadata_url, registry_tgz_url
from .discovery import read_descriptor

__all__ = [
    "NpmRegistryClient",
    "is_scoped",
    "registry_metadata_url",
    "registry_tgz_url",
    "read_descriptor",
]
