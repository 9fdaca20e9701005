"""
Maven-style artifact coordinates.

An ArtifactId identifies a bundle, a feature or any other artifact by
group, artifact, version, classifier and type. It reads and writes three
textual forms:

    mvn id:    group:artifact[:type[:classifier]]:version
    mvn url:   mvn:group/artifact/version[/type[/classifier]]
    mvn path:  group/as/dirs/artifact/version/artifact-version[-classifier].type

Ids are immutable; the `change_*` methods return new instances.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..config import DEFAULT_TYPE, TYPE_ALIASES
from .errors import InvalidInputError
from .version import OsgiVersion, compare_versions


class ArtifactId(BaseModel):
    """
    Immutable Maven coordinate.

    Equality and hashing use the canonical mvn url; ordering compares group,
    artifact, version (OSGi semantics with a lexical fallback), classifier
    (absent first) and type.

    All four ordering operators follow `compare_to`, so `g:a:1` and
    `g:a:1.0` satisfy both `<=` and `>=` while still being unequal.
    """

    group_id: str
    artifact_id: str
    version: str
    classifier: Optional[str] = None
    type: str = DEFAULT_TYPE

    model_config = ConfigDict(frozen=True)

    def __init__(
        self,
        group_id: Optional[str] = None,
        artifact_id: Optional[str] = None,
        version: Optional[str] = None,
        classifier: Optional[str] = None,
        type: Optional[str] = None,
    ) -> None:
        if group_id is None or artifact_id is None or version is None:
            raise InvalidInputError(
                "group id, artifact id and version must not be null",
                (group_id, artifact_id, version),
            )
        try:
            super().__init__(
                group_id=group_id,
                artifact_id=artifact_id,
                version=version,
                classifier=classifier,
                type=type,
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid artifact id: {e}", (group_id, artifact_id, version))

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        if not value or value in TYPE_ALIASES:
            return DEFAULT_TYPE
        return value

    @field_validator("classifier", mode="before")
    @classmethod
    def _normalize_classifier(cls, value: Any) -> Optional[str]:
        return value or None

    # --- Parsing ---

    @classmethod
    def parse(cls, text: str) -> "ArtifactId":
        """
        Parse either an mvn url or an mvn id.

        Raises:
            InvalidInputError: If the text is neither.
        """
        if "/" in text:
            return cls.from_mvn_url(text)
        if ":" in text:
            return cls.from_mvn_id(text)
        raise InvalidInputError(f"Unable to parse mvn coordinates/url: {text}", text)

    @classmethod
    def from_mvn_url(cls, url: str) -> "ArtifactId":
        """Parse `mvn:group/artifact/version[/type[/classifier]]` (prefix optional)."""
        if url is None or (":" in url and not url.startswith("mvn:")):
            raise InvalidInputError(f"Invalid mvn url: {url}", url)
        if "!" in url:
            raise InvalidInputError(
                "Repository url is not supported for Maven artifacts at the moment.", url
            )
        coordinates = url[4:] if url.startswith("mvn:") else url
        # empty segments keep their slot, e.g. g/a/1//cls has no type
        parts = [p or None for p in coordinates.split("/")]
        parts += [None] * (5 - len(parts))
        group_id, artifact_id, version, type_, classifier = parts[:5]
        return cls(group_id, artifact_id, version, classifier, type_)

    @classmethod
    def from_mvn_id(cls, coordinates: str) -> "ArtifactId":
        """Parse `group:artifact[:type[:classifier]]:version`."""
        parts = coordinates.split(":")
        while parts and parts[-1] == "":
            parts.pop()
        if len(parts) < 3 or len(parts) > 5:
            raise InvalidInputError(f"Invalid mvn coordinates: {coordinates}", coordinates)
        return cls(
            parts[0].strip(),
            parts[1].strip(),
            parts[-1].strip(),
            parts[3].strip() if len(parts) > 4 else None,
            parts[2].strip() if len(parts) > 3 else None,
        )

    @classmethod
    def from_mvn_path(cls, path: str) -> "ArtifactId":
        """Parse a Maven repository path like `g/a/1.0/a-1.0-cls.zip`."""
        parts = (path[1:] if path.startswith("/") else path).split("/")
        if len(parts) < 4:
            raise InvalidInputError(f"Invalid mvn path: {path}", path)
        group_id = ".".join(parts[:-3])
        artifact_id = parts[-3]
        version = parts[-2]
        file_name = parts[-1]
        prefix = f"{artifact_id}-{version}"
        if not file_name.startswith(prefix):
            raise InvalidInputError(f"Invalid mvn path: {path}", path)
        pos = file_name.rfind(".")
        type_ = file_name[pos + 1:]
        classifier = None
        if pos > len(prefix):
            if file_name[len(prefix)] != "-":
                raise InvalidInputError(f"Invalid mvn path: {path}", path)
            classifier = file_name[len(prefix) + 1:pos]
        return cls(group_id, artifact_id, version, classifier, type_)

    # --- Formatting ---

    def _needs_type(self) -> bool:
        return self.classifier is not None or self.type != DEFAULT_TYPE

    def to_mvn_url(self) -> str:
        """Format as `mvn:group/artifact/version[/type[/classifier]]`."""
        url = f"mvn:{self.group_id}/{self.artifact_id}/{self.version}"
        if self._needs_type():
            url += f"/{self.type}"
            if self.classifier is not None:
                url += f"/{self.classifier}"
        return url

    def to_mvn_id(self) -> str:
        """Format as `group:artifact[:type[:classifier]]:version`."""
        mvn_id = f"{self.group_id}:{self.artifact_id}"
        if self._needs_type():
            mvn_id += f":{self.type}"
            if self.classifier is not None:
                mvn_id += f":{self.classifier}"
        return f"{mvn_id}:{self.version}"

    def to_mvn_name(self) -> str:
        """File name of the artifact inside a Maven repository."""
        name = f"{self.artifact_id}-{self.version}"
        if self.classifier is not None:
            name += f"-{self.classifier}"
        return f"{name}.{self.type}"

    def to_mvn_path(self) -> str:
        """Relative path of the artifact inside a Maven repository."""
        directory = self.group_id.replace(".", "/")
        return f"{directory}/{self.artifact_id}/{self.version}/{self.to_mvn_name()}"

    # --- Identity ---

    def is_same(self, other: "ArtifactId") -> bool:
        """True if both ids name the same artifact, ignoring the version."""
        return (
            self.group_id == other.group_id
            and self.artifact_id == other.artifact_id
            and self.type == other.type
            and self.classifier == other.classifier
        )

    @property
    def osgi_version(self) -> OsgiVersion:
        """
        The version converted to OSGi semantics.

        Raises:
            InvalidInputError: If the version has no OSGi reading.
        """
        return OsgiVersion.from_maven(self.version)

    def change_version(self, version: str) -> "ArtifactId":
        return ArtifactId(self.group_id, self.artifact_id, version, self.classifier, self.type)

    def change_type(self, type_: Optional[str]) -> "ArtifactId":
        return ArtifactId(self.group_id, self.artifact_id, self.version, self.classifier, type_)

    def change_classifier(self, classifier: Optional[str]) -> "ArtifactId":
        return ArtifactId(self.group_id, self.artifact_id, self.version, classifier, self.type)

    def compare_to(self, other: "ArtifactId") -> int:
        """Classic comparator over group, artifact, version, classifier, type."""
        for mine, theirs in (
            (self.group_id, other.group_id),
            (self.artifact_id, other.artifact_id),
        ):
            if mine != theirs:
                return -1 if mine < theirs else 1
        result = compare_versions(self.version, other.version)
        if result:
            return result
        if self.classifier != other.classifier:
            if self.classifier is None:
                return -1
            if other.classifier is None:
                return 1
            return -1 if self.classifier < other.classifier else 1
        return (self.type > other.type) - (self.type < other.type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArtifactId):
            return NotImplemented
        return self.to_mvn_url() == other.to_mvn_url()

    def __lt__(self, other: "ArtifactId") -> bool:
        if not isinstance(other, ArtifactId):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other: "ArtifactId") -> bool:
        if not isinstance(other, ArtifactId):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other: "ArtifactId") -> bool:
        if not isinstance(other, ArtifactId):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other: "ArtifactId") -> bool:
        if not isinstance(other, ArtifactId):
            return NotImplemented
        return self.compare_to(other) >= 0

    def __hash__(self) -> int:
        return hash(self.to_mvn_url())

    def __str__(self) -> str:
        return self.to_mvn_id()

    def __repr__(self) -> str:
        return f"ArtifactId({self.to_mvn_id()!r})"
