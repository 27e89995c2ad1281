"""
Pipeline data model
Targets, captured pages, synthesized programs and execution results
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TargetStatus(str, Enum):
    """Terminal state of one Target after a pipeline pass"""
    SKIPPED_IRRELEVANT = "skipped_irrelevant"
    SKIPPED_NO_PROGRAM = "skipped_no_program"
    SKIPPED_NO_OUTPUT = "skipped_no_output"
    PERSISTED = "persisted"
    ERRORED = "errored"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    NO_OUTPUT = "no_output"
    ERROR = "error"


@dataclass(frozen=True)
class Target:
    """One URL plus the content category wanted from it"""
    url: str
    category: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Target":
        """
        Build a Target from a config entry

        Accepts both {'url', 'category'} and the legacy {'url', 'content'} shape.
        """
        url = (data.get('url') or '').strip()
        category = (data.get('category') or data.get('content') or '').strip()
        if not url or not category:
            raise ValueError(f"Target needs both 'url' and 'category': {data!r}")
        return cls(url=url, category=category)


@dataclass
class CapturedPage:
    url: str
    raw_markup: str
    content_snippet: str


@dataclass(frozen=True)
class SynthesizedProgram:
    """An accepted extraction program, owned by the program cache"""
    url: str
    source_text: str
    created_at: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_document(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'sourceText': self.source_text,
            'createdAt': self.created_at
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SynthesizedProgram":
        return cls(
            url=document['url'],
            source_text=document['sourceText'],
            created_at=document['createdAt'],
            id=document['id']
        )


@dataclass
class ExecutionResult:
    url: str
    status: ExecutionStatus
    payload: Any = None
    script_id: Optional[str] = None
    completed_at: float = field(default_factory=time.time)
    error: Optional[str] = None


@dataclass
class TargetOutcome:
    """What happened to one Target during a run"""
    target: Target
    status: TargetStatus
    steps_completed: int = 0
    detail: str = ""
    script_id: Optional[str] = None
    output_path: Optional[str] = None
    from_cache: bool = False
    result: Optional[ExecutionResult] = None


@dataclass
class RunReport:
    outcomes: List[TargetOutcome] = field(default_factory=list)
    total_steps: int = 0
    completed_steps: int = 0
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def counts(self) -> Dict[TargetStatus, int]:
        counts = {status: 0 for status in TargetStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    def summary(self) -> str:
        parts = [f"{status.value}={count}" for status, count in self.counts.items()]
        return f"{len(self.outcomes)} targets: " + ", ".join(parts)
