"""Priority-ordered resolver chain."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ..config import Config
from ..errors import BinaryNotFoundError
from .base import BinaryResolver
from .npm import NpmBinaryResolver
from .path import CommonLocationsResolver, PathBinaryResolver

__all__ = ["ResolverChain", "default_resolvers", "resolve_binary"]

logger = logging.getLogger(__name__)


def default_resolvers() -> list[BinaryResolver]:
    """The built-in resolvers, in no particular order."""
    return [NpmBinaryResolver(), PathBinaryResolver(), CommonLocationsResolver()]


class ResolverChain:
    """Try applicable resolvers by descending priority; first hit wins.

    Example:
        chain = ResolverChain()
        binary = chain.resolve()  # raises BinaryNotFoundError when exhausted
    """

    def __init__(self, resolvers: Sequence[BinaryResolver] | None = None) -> None:
        self.resolvers = list(resolvers) if resolvers is not None else default_resolvers()

    def ordered(self) -> list[BinaryResolver]:
        """Applicable resolvers sorted by descending priority."""
        applicable = []
        for resolver in self.resolvers:
            try:
                if resolver.is_applicable():
                    applicable.append(resolver)
            except Exception as e:
                logger.warning(f"Resolver {resolver.name} applicability check failed: {e}")
        # sorted() is stable, so equal priorities keep registration order
        return sorted(applicable, key=lambda r: r.priority, reverse=True)

    def resolve(self) -> Path:
        tried: list[str] = []
        for resolver in self.ordered():
            tried.append(resolver.name)
            try:
                found = resolver.resolve()
            except Exception as e:
                logger.warning(f"Resolver {resolver.name} failed: {e}")
                continue
            if found:
                logger.debug(f"Resolved claude via {resolver.name}: {found}")
                return Path(found)
            logger.debug(f"Resolver {resolver.name} found nothing")
        raise BinaryNotFoundError(tried)


def resolve_binary(config: Config, chain: ResolverChain | None = None) -> Path:
    """Return the configured binary path, or resolve one with the chain."""
    if config.binary_path:
        return Path(config.binary_path)
    return (chain or ResolverChain()).resolve()
