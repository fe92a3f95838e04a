"""Watched-interval arithmetic for video progress."""

from collections.abc import Iterable
from dataclasses import dataclass

from buddyflow.domain.common.exceptions import ValidationError
from buddyflow.domain.common.value_object import ValueObject


@dataclass(frozen=True)
class WatchedSegment(ValueObject):
    """Half-open interval ``[start, end)`` of video time, in seconds."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValidationError("Segment start cannot be negative", field="start", value=self.start)
        if self.end <= self.start:
            raise ValidationError("Segment end must be after its start", field="end", value=self.end)

    @property
    def length(self) -> float:
        return self.end - self.start

    def overlap(self, other: "WatchedSegment") -> float:
        """Length shared with ``other``; zero unless the intervals truly intersect."""
        low = max(self.start, other.start)
        high = min(self.end, other.end)
        return high - low if low < high else 0.0

    def to_dict(self) -> dict[str, float]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, raw: dict[str, float]) -> "WatchedSegment":
        return cls(start=float(raw["start"]), end=float(raw["end"]))


def merge_segments(segments: Iterable[WatchedSegment]) -> list[WatchedSegment]:
    """
    Coalesce overlapping or touching segments.

    Segments are sorted by start; a segment starting at or before the end
    of the previous merged one extends it. The result is independent of
    input order.
    """
    merged: list[WatchedSegment] = []
    for segment in sorted(segments, key=lambda s: (s.start, s.end)):
        if merged and segment.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = WatchedSegment(start=last.start, end=max(last.end, segment.end))
        else:
            merged.append(segment)
    return merged


def total_watch_time(segments: Iterable[WatchedSegment]) -> float:
    return sum(s.length for s in merge_segments(segments))


def watch_percentage(segments: Iterable[WatchedSegment], duration: float | None) -> float:
    if not duration or duration <= 0:
        return 0.0
    return min(total_watch_time(segments) / duration * 100, 100.0)


def required_coverage(
    watched: Iterable[WatchedSegment], required: Iterable[WatchedSegment]
) -> float:
    """Percentage of the required segments' total length covered by watched time."""
    required = list(required)
    if not required:
        return 100.0
    total_required = sum(r.length for r in required)
    merged = merge_segments(watched)
    covered = sum(w.overlap(r) for r in required for w in merged)
    return min(covered / total_required * 100, 100.0)
