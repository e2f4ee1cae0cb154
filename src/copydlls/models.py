from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


MERGED_STATISTIC_NAME = "__MERGED__"


@dataclass(slots=True)
class Statistic:
    name: str
    copied: int = 0
    skipped: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.copied + self.skipped + self.deleted

    def progress_message(self) -> str:
        return f"copied {self.copied}, skipped {self.skipped}, deleted {self.deleted}"

    def reset(self) -> None:
        self.copied = 0
        self.skipped = 0
        self.deleted = 0

    @classmethod
    def merge(cls, statistics: Iterable[Statistic], name: str = MERGED_STATISTIC_NAME) -> Statistic:
        merged = cls(name=name)
        for statistic in statistics:
            merged.copied += statistic.copied
            merged.skipped += statistic.skipped
            merged.deleted += statistic.deleted
        return merged


@dataclass(slots=True)
class SyncReport:
    statistics: dict[str, Statistic] = field(default_factory=dict)
    skipped_extensions: list[str] = field(default_factory=list)

    def for_extension(self, extension: str) -> Statistic:
        return self.statistics[extension]

    @property
    def merged(self) -> Statistic:
        return Statistic.merge(self.statistics.values())
