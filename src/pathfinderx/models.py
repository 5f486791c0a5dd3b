from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .document import NodeRef

LocatorKind = Literal["xpath", "css", "shadow"]
MatchStatus = Literal["none", "unique", "multiple"]
DocumentOrder = Literal["before", "after", "same"]


@dataclass(frozen=True, slots=True)
class CandidateLocator:
    kind: LocatorKind
    expression: str
    label: str
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "expression": self.expression,
            "label": self.label,
        }
        if self.note:
            payload["note"] = self.note
        return payload


@dataclass(frozen=True, slots=True)
class UniquenessResult:
    count: int

    @property
    def status(self) -> MatchStatus:
        if self.count <= 0:
            return "none"
        if self.count == 1:
            return "unique"
        return "multiple"

    @property
    def unique(self) -> bool:
        return self.count == 1


@dataclass(frozen=True, slots=True)
class ShadowHost:
    tag: str
    selector: str


@dataclass(frozen=True, slots=True)
class ShadowTrail:
    hosts: tuple[ShadowHost, ...]
    target_selector: str

    @property
    def depth(self) -> int:
        return len(self.hosts)

    @property
    def expression(self) -> str:
        return " >>> ".join([host.selector for host in self.hosts] + [self.target_selector])


@dataclass(frozen=True, slots=True)
class AnchorMatch:
    node: NodeRef
    expression: str
    hops: int


@dataclass(frozen=True, slots=True)
class RelationOption:
    label: str
    expression: str
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"label": self.label, "expression": self.expression}
        if self.note:
            payload["note"] = self.note
        return payload
