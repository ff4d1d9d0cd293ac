"""Chapter sequencing.

Chapters of a course form a strict linear sequence. A chapter is unlocked
once the chapter immediately before it has been completed; the first chapter
is always unlocked. Locking only applies to learners, and a locked chapter's
video is withheld.

Ordering is ``(sequence, created_at, id)`` so duplicate or gapped sequence
numbers still produce one total order. The same predecessor rule backs both
the lock flags shown to students and the server-side completion check.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from codearc.auth.permissions import UserRole, is_sequenced
from codearc.courses.models import Chapter


def chapter_order_key(chapter: Chapter) -> tuple[int, datetime, str]:
    return (chapter.sequence, chapter.created_at, str(chapter.id))


def order_chapters(chapters: Iterable[Chapter]) -> list[Chapter]:
    """Sort chapters into their learning order."""
    return sorted(chapters, key=chapter_order_key)


def predecessor_of(chapters: Iterable[Chapter], chapter_id: UUID) -> Chapter | None:
    """Get the chapter immediately before ``chapter_id`` in learning order.

    Returns:
        The preceding chapter, or None for the first chapter.

    Raises:
        KeyError: If ``chapter_id`` is not one of ``chapters``.
    """
    ordered = order_chapters(chapters)
    for index, chapter in enumerate(ordered):
        if chapter.id == chapter_id:
            return ordered[index - 1] if index > 0 else None
    raise KeyError(chapter_id)


@dataclass(frozen=True)
class SequencedChapter:
    """A chapter as seen by one viewer."""

    chapter: Chapter
    position: int
    is_completed: bool
    is_locked: bool

    @property
    def video_url(self) -> str | None:
        """Video reference, withheld while the chapter is locked."""
        return None if self.is_locked else self.chapter.video_url


def sequence_chapters(
    chapters: Iterable[Chapter],
    completed_ids: Collection[UUID],
    viewer_role: UserRole | str,
) -> list[SequencedChapter]:
    """Compute lock and completion state for every chapter of a course.

    Args:
        chapters: The course's chapters, in any order
        completed_ids: Chapter ids the student has completed
        viewer_role: Role of the viewer; only students are sequenced

    Returns:
        Chapters in learning order with their derived state. An empty course
        yields an empty list.
    """
    sequenced = is_sequenced(viewer_role)
    result: list[SequencedChapter] = []
    previous: Chapter | None = None

    for position, chapter in enumerate(order_chapters(chapters)):
        locked = (
            sequenced and previous is not None and previous.id not in completed_ids
        )
        result.append(
            SequencedChapter(
                chapter=chapter,
                position=position,
                is_completed=chapter.id in completed_ids,
                is_locked=locked,
            )
        )
        previous = chapter

    return result
