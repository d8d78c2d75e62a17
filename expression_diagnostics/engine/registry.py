"""Prototype registry -- lookup interface + in-memory implementation.

- PrototypeRegistry: abstract interface, injected into the engines
- InMemoryPrototypeRegistry: tables held in memory, built from lookup data

Engines receive a registry at construction instead of reaching for a
global data registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from expression_diagnostics.models.axis import Prototype
from expression_diagnostics.models.common import PrototypeDomain


class PrototypeNotFoundError(LookupError):
    """Unknown prototype id or prototype domain."""

    def __init__(self, prototype_id: str | None, domain: str) -> None:
        self.prototype_id = prototype_id
        self.domain = domain
        if prototype_id is None:
            msg = f"Unknown prototype domain: {domain!r}"
        else:
            msg = f"Prototype {prototype_id!r} not found in domain {domain!r}"
        super().__init__(msg)


def coerce_domain(domain: PrototypeDomain | str) -> PrototypeDomain:
    """Normalize a domain name, raising PrototypeNotFoundError if unknown."""
    try:
        return PrototypeDomain(domain)
    except ValueError:
        raise PrototypeNotFoundError(None, str(domain)) from None


class PrototypeRegistry(ABC):
    """Abstract lookup of prototype tables by domain."""

    @abstractmethod
    def get_prototypes(self, domain: PrototypeDomain) -> Mapping[str, Prototype]:
        """Return the prototype table for *domain* keyed by prototype id."""

    def get(self, domain: PrototypeDomain | str, prototype_id: str) -> Prototype:
        """Fetch one prototype.

        Raises:
            PrototypeNotFoundError: if the domain or the prototype is unknown.
        """
        resolved = coerce_domain(domain)
        prototype = self.get_prototypes(resolved).get(prototype_id)
        if prototype is None:
            raise PrototypeNotFoundError(prototype_id, resolved.value)
        return prototype


class InMemoryPrototypeRegistry(PrototypeRegistry):
    """Prototype tables held in memory, keyed by domain then prototype id."""

    def __init__(
        self,
        tables: Mapping[PrototypeDomain | str, Iterable[Prototype]] | None = None,
    ) -> None:
        self._tables: dict[PrototypeDomain, dict[str, Prototype]] = {
            domain: {} for domain in PrototypeDomain
        }
        for domain, prototypes in (tables or {}).items():
            for prototype in prototypes:
                self.register(domain, prototype)

    @classmethod
    def from_lookup(
        cls,
        lookups: Mapping[str, Mapping[str, Mapping[str, object]]],
    ) -> InMemoryPrototypeRegistry:
        """Build a registry from raw lookup data.

        ``lookups`` maps a domain name to ``{prototype_id: {"weights": ...,
        "gates": [...]}}``, the shape of the authoring tool's prototype
        lookup files. Gate strings are parsed on load.
        """
        registry = cls()
        for domain, entries in lookups.items():
            for prototype_id, entry in entries.items():
                registry.register(
                    domain,
                    Prototype(
                        id=prototype_id,
                        weights=dict(entry.get("weights") or {}),
                        gates=list(entry.get("gates") or []),
                    ),
                )
        return registry

    def register(self, domain: PrototypeDomain | str, prototype: Prototype) -> None:
        """Add or replace *prototype* in the table for *domain*."""
        self._tables[coerce_domain(domain)][prototype.id] = prototype

    def get_prototypes(self, domain: PrototypeDomain) -> Mapping[str, Prototype]:
        """Read-only view of the table for *domain*."""
        return MappingProxyType(self._tables[coerce_domain(domain)])

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())
