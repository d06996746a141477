"""
CLARK Entities - Value Objects

Immutable, self-validating domain primitives shared by the learning object
aggregate: the wire enumerations, attachment metadata, metrics, locks, and
external standard outcomes.

Every value object round-trips through ``from_dict``/``to_dict`` using the
persisted camelCase key names.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.errors import InvalidLock, InvalidMetrics


# =============================================================================
# ENUMERATIONS - The wire vocabulary
# =============================================================================


class Length(str, Enum):
    """Granularity of a learning object."""
    NANOMODULE = "nanomodule"
    MICROMODULE = "micromodule"
    MODULE = "module"
    UNIT = "unit"
    COURSE = "course"


class Status(str, Enum):
    """Publication workflow states."""
    REJECTED = "rejected"
    UNRELEASED = "unreleased"
    WAITING = "waiting"
    REVIEWED = "reviewed"
    PROOFING = "proofing"
    RELEASED = "released"

    @property
    def is_terminal(self) -> bool:
        return self is Status.REJECTED


class AcademicLevel(str, Enum):
    """Target audience of a learning object."""
    ELEMENTARY = "elementary"
    MIDDLE = "middle"
    HIGH = "high"
    UNDERGRADUATE = "undergraduate"
    GRADUATE = "graduate"
    POST_GRADUATE = "post graduate"
    COMMUNITY_COLLEGE = "community college"
    TRAINING = "training"


class Restriction(str, Enum):
    """Operations a lock can restrict."""
    FULL = "full"
    PUBLISH = "publish"
    DOWNLOAD = "download"


class Capability(str, Enum):
    """
    Which rule set an entity is validated against.

    Drafts are what authors edit; submittable entities carry the stricter
    invariants required when content is proposed for review.
    """
    DRAFT = "draft"
    SUBMITTABLE = "submittable"


def coerce_enum(enum_type: type, value: Any) -> Optional[Enum]:
    """Return the enum member for ``value`` (member or raw value), or None."""
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        return None


# =============================================================================
# MATERIALS - Opaque attachment metadata
# =============================================================================


@dataclass(frozen=True)
class File:
    """A file attached to a learning object."""
    id: str = ""
    name: str = ""
    file_type: str = ""
    extension: str = ""
    url: str = ""
    date: str = ""
    full_path: Optional[str] = None
    size: Optional[int] = None
    description: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    _KEYS = ("id", "name", "fileType", "extension", "url", "date", "fullPath", "size", "description")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "File":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            file_type=data.get("fileType", ""),
            extension=data.get("extension", ""),
            url=data.get("url", ""),
            date=data.get("date", ""),
            full_path=data.get("fullPath"),
            size=data.get("size"),
            description=data.get("description"),
            extra={k: v for k, v in data.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "fileType": self.file_type,
            "extension": self.extension,
            "url": self.url,
            "date": self.date,
        }
        if self.full_path is not None:
            result["fullPath"] = self.full_path
        if self.size is not None:
            result["size"] = self.size
        if self.description is not None:
            result["description"] = self.description
        result.update(self.extra)
        return result


@dataclass(frozen=True)
class Url:
    title: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Url":
        return cls(title=data.get("title", ""), url=data.get("url", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url}


@dataclass(frozen=True)
class FolderDescription:
    path: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FolderDescription":
        return cls(path=data.get("path", ""), description=data.get("description", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "description": self.description}


@dataclass(frozen=True)
class LearningObjectPDF:
    name: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "LearningObjectPDF":
        data = data or {}
        return cls(name=data.get("name", ""), url=data.get("url", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url}


@dataclass(frozen=True)
class Material:
    """
    Files, links, notes and the generated PDF of a learning object.

    No invariants beyond shape; the file service owns the contents.
    """
    files: Tuple[File, ...] = ()
    urls: Tuple[Url, ...] = ()
    notes: str = ""
    folder_descriptions: Tuple[FolderDescription, ...] = ()
    pdf: LearningObjectPDF = field(default_factory=LearningObjectPDF)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Material":
        return cls(
            files=tuple(File.from_dict(f) for f in data.get("files") or ()),
            urls=tuple(Url.from_dict(u) for u in data.get("urls") or ()),
            notes=data.get("notes") or "",
            folder_descriptions=tuple(
                FolderDescription.from_dict(d) for d in data.get("folderDescriptions") or ()
            ),
            pdf=LearningObjectPDF.from_dict(data.get("pdf")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [f.to_dict() for f in self.files],
            "urls": [u.to_dict() for u in self.urls],
            "notes": self.notes,
            "folderDescriptions": [d.to_dict() for d in self.folder_descriptions],
            "pdf": self.pdf.to_dict(),
        }


# =============================================================================
# METRICS AND LOCKS
# =============================================================================


@dataclass(frozen=True)
class Metrics:
    """Usage counters maintained by the surrounding system."""
    saves: int = 0
    downloads: int = 0

    def __post_init__(self) -> None:
        for name in ("saves", "downloads"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidMetrics(
                    {"saves": self.saves, "downloads": self.downloads},
                    reason=f"Metric {name} must be a non-negative integer",
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metrics":
        return cls(saves=data.get("saves", 0), downloads=data.get("downloads", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {"saves": self.saves, "downloads": self.downloads}


@dataclass(frozen=True)
class LearningObjectLock:
    """
    Externally imposed restriction on a learning object.

    Enforcement belongs to the application layer; the aggregate only
    records whether a lock is present.
    """
    restrictions: Tuple[Restriction, ...] = ()
    date: Optional[str] = None

    def __post_init__(self) -> None:
        restrictions = self.restrictions
        # A single restriction may be persisted without the list
        if isinstance(restrictions, (str, Restriction)):
            restrictions = (restrictions,)
        coerced = []
        for restriction in restrictions:
            member = coerce_enum(Restriction, restriction)
            if member is None:
                raise InvalidLock(restriction)
            coerced.append(member)
        object.__setattr__(self, "restrictions", tuple(coerced))

    def restricts(self, restriction: Restriction) -> bool:
        return Restriction.FULL in self.restrictions or restriction in self.restrictions

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LearningObjectLock":
        return cls(
            restrictions=data.get("restrictions") or (),
            date=data.get("date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"restrictions": [r.value for r in self.restrictions]}
        if self.date is not None:
            result["date"] = self.date
        return result


# =============================================================================
# OUTCOMES FROM OUTSIDE THE AGGREGATE
# =============================================================================


@dataclass(frozen=True)
class OutcomeSource:
    """Author, name and date of the learning object an outcome belongs to."""
    author: str = ""
    name: str = ""
    date: str = ""


@dataclass(frozen=True)
class StandardOutcome:
    """
    An outcome drawn from an external standard (e.g. a workforce framework).

    Immutable; learning outcomes map to these without owning them.
    """
    author: str = ""
    name: str = ""
    date: str = ""
    outcome: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StandardOutcome":
        return cls(
            author=str(data.get("author", "")),
            name=str(data.get("name", "")),
            date=str(data.get("date", "")),
            outcome=str(data.get("outcome", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "author": self.author,
            "name": self.name,
            "date": self.date,
            "outcome": self.outcome,
        }


EMPTY_MATERIAL = Material()


def empty_levels() -> List[AcademicLevel]:
    return [AcademicLevel.UNDERGRADUATE]
