"""Data models for artifacts under compliance evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping


@dataclass(frozen=True, order=True)
class ArtifactCoordinates:
    """Semantic id of an artifact: name + version + source."""

    name: str
    version: str = ""
    source: str = ""

    def __str__(self) -> str:
        ref = self.name
        if self.version:
            ref += f"@{self.version}"
        if self.source:
            ref = f"{self.source}:{ref}"
        return ref


def _freeze(values: Iterable[str] | None) -> frozenset[str] | None:
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip() for v in values if str(v).strip())


@dataclass(frozen=True, eq=False)
class Artifact:
    """A software component under evaluation.

    ``licenses`` and ``copyrights`` are ``None`` when the attribute was never
    resolved, which is not the same as an empty set (resolved, nothing declared).
    """

    coordinates: ArtifactCoordinates
    licenses: frozenset[str] | None = frozenset()
    copyrights: frozenset[str] | None = frozenset()
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "licenses", _freeze(self.licenses))
        object.__setattr__(self, "copyrights", _freeze(self.copyrights))
        meta = {str(k): str(v) for k, v in dict(self.metadata or {}).items()}
        object.__setattr__(self, "metadata", MappingProxyType(meta))

    def __hash__(self) -> int:
        return hash((self.coordinates, self.licenses, self.copyrights, tuple(sorted(self.metadata.items()))))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Artifact):
            return NotImplemented
        return (
            self.coordinates == other.coordinates
            and self.licenses == other.licenses
            and self.copyrights == other.copyrights
            and dict(self.metadata) == dict(other.metadata)
        )

    @classmethod
    def create(
        cls,
        name: str,
        version: str = "",
        source: str = "",
        *,
        licenses: Iterable[str] | None = (),
        copyrights: Iterable[str] | None = (),
        metadata: Mapping[str, Any] | None = None,
    ) -> "Artifact":
        return cls(
            coordinates=ArtifactCoordinates(name=name, version=version, source=source),
            licenses=licenses,  # type: ignore[arg-type]
            copyrights=copyrights,  # type: ignore[arg-type]
            metadata=metadata or {},
        )

    @property
    def id(self) -> str:
        return str(self.coordinates)

    @property
    def name(self) -> str:
        return self.coordinates.name

    @property
    def version(self) -> str:
        return self.coordinates.version

    @property
    def source(self) -> str:
        return self.coordinates.source
