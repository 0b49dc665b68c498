"""Deep title search over the roadmap tree.

Search is a linear recursive scan; the collection is small enough that no
index is kept. ``SearchIndex`` only memoizes answers for one tree snapshot.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from roadmap_admin.schemas.roadmap import Roadmap
from roadmap_admin.services.tree_ops import iter_titles


@dataclass(frozen=True)
class Highlight:
    """Text split around the emphasized match."""

    before: str
    match: str
    after: str


def matches(roadmap: Roadmap, term: str) -> bool:
    """Whether ``term`` occurs in the roadmap's title or any descendant title.

    Case-insensitive substring match. A blank term matches everything.
    """
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in title.lower() for title in iter_titles(roadmap))


def highlight(text: str, term: str) -> Highlight | str:
    """Split ``text`` around the first case-insensitive occurrence of ``term``.

    Only the first occurrence is emphasized. Returns ``text`` unchanged when
    the term is empty or absent.
    """
    if not term:
        return text
    index = text.lower().find(term.lower())
    if index == -1:
        return text
    end = index + len(term)
    return Highlight(before=text[:index], match=text[index:end], after=text[end:])


def filter_roadmaps(
    roadmaps: Sequence[Roadmap], term: str = "", status: str | None = None
) -> list[Roadmap]:
    """Roadmaps matching ``term`` and, when given, ``status``."""
    return [
        roadmap
        for roadmap in roadmaps
        if (status is None or roadmap.status == status) and matches(roadmap, term)
    ]


class SearchIndex:
    """Per-term memo of ``matches`` for one tree snapshot.

    The memo is dropped whenever a different roadmap list is passed in, so
    callers can hand it the store's current list on every keystroke.
    """

    def __init__(self) -> None:
        self._source: Sequence[Roadmap] | None = None
        self._memo: dict[tuple[str, str | None], list[str]] = {}

    def visible_ids(
        self, roadmaps: Sequence[Roadmap], term: str = "", status: str | None = None
    ) -> list[str]:
        if roadmaps is not self._source:
            self._source = roadmaps
            self._memo = {}
        key = (term.strip().lower(), status)
        if key not in self._memo:
            self._memo[key] = [r.id for r in filter_roadmaps(roadmaps, term, status)]
        return list(self._memo[key])
