"""
Data types shared by the migration stages.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Asset:
    """A media asset in one repository. Ids are repository-scoped."""
    id: str
    filename: str
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(id=data.get("id"), filename=data.get("filename"), url=data.get("url"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "filename": self.filename, "url": self.url}


def assets_from_items(items: Optional[List[Dict[str, Any]]]) -> List[Asset]:
    """Convert raw API items into Assets, skipping non-dict entries."""
    return [Asset.from_dict(item) for item in items or [] if isinstance(item, dict)]


@dataclass(frozen=True)
class IdMapping:
    """Associates a source asset id with its destination asset id."""
    prev_id: str
    id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdMapping":
        return cls(prev_id=data["prevID"], id=data["id"])

    def to_dict(self) -> Dict[str, str]:
        return {"prevID": self.prev_id, "id": self.id}


@dataclass
class MappingStats:
    total_source: int = 0
    total_destination: int = 0
    matched: int = 0
    ambiguous: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalSource": self.total_source,
            "totalDestination": self.total_destination,
            "matched": self.matched,
            "ambiguous": self.ambiguous,
        }


@dataclass
class MappingResult:
    mappings: List[IdMapping] = field(default_factory=list)
    stats: MappingStats = field(default_factory=MappingStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mappings": [m.to_dict() for m in self.mappings],
            "stats": self.stats.to_dict(),
        }


@dataclass
class MigrationRunResult:
    """Outcome of one document migration run. Not persisted."""
    total_documents: int = 0
    failures: int = 0

    @property
    def succeeded(self) -> int:
        return self.total_documents - self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {"done": True, "totalDocuments": self.total_documents, "failures": self.failures}


@dataclass
class TransferResult:
    """Outcome of a sequential asset download or upload batch."""
    total: int = 0
    completed: int = 0
    skipped: int = 0
    failures: int = 0
    mappings: List[IdMapping] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["mappings"] = [m.to_dict() for m in self.mappings]
        return result


@dataclass
class LanguageReport:
    source_languages: List[Dict[str, Any]] = field(default_factory=list)
    destination_languages: List[Dict[str, Any]] = field(default_factory=list)
    document_languages: List[str] = field(default_factory=list)
    missing_languages: List[str] = field(default_factory=list)
    language_instructions: List[Dict[str, Any]] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceLanguages": self.source_languages,
            "destinationLanguages": self.destination_languages,
            "documentLanguages": self.document_languages,
            "missingLanguages": self.missing_languages,
            "languageInstructions": self.language_instructions,
            "instructions": self.instructions,
        }
