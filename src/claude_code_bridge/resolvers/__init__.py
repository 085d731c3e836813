"""Locating the claude executable.

Resolvers are tried by descending priority; the first one that finds the
binary wins:

    npm-global (100) -> PATH (50) -> common-locations (10)
"""

from .base import BinaryResolver
from .chain import ResolverChain, default_resolvers, resolve_binary
from .npm import NpmBinaryResolver
from .path import CommonLocationsResolver, PathBinaryResolver

__all__ = [
    "BinaryResolver",
    "CommonLocationsResolver",
    "NpmBinaryResolver",
    "PathBinaryResolver",
    "ResolverChain",
    "default_resolvers",
    "resolve_binary",
]
