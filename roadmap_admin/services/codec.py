"""JSON import/export of roadmap collections.

The exported file is a bare JSON array of roadmaps with wire field names and no
envelope. Import checks only the top-level shape (an array of objects that each
carry ``id`` and ``title``); nested data is accepted as-is and normalized by the
forgiving schemas, so partially written drafts can be brought in.
"""

import json
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import date

import pydantic

from roadmap_admin.core.errors import ImportFormatError
from roadmap_admin.core.logging import get_logger
from roadmap_admin.schemas.roadmap import Roadmap

logger = get_logger(__name__)

REQUIRED_IMPORT_KEYS: tuple[str, ...] = ("id", "title")


@dataclass(frozen=True)
class ExportDocument:
    """A ready-to-download export."""

    filename: str
    content: str
    count: int


def export_roadmaps(
    roadmaps: Sequence[Roadmap],
    selected_ids: Collection[str] = (),
    today: date | None = None,
) -> ExportDocument:
    """Serialize the selected roadmaps, or all of them when nothing is selected.

    Args:
        roadmaps: Full roadmap list
        selected_ids: Ids to export; empty means export everything
        today: Date stamped into the filename (defaults to today)

    Returns:
        ExportDocument with a pretty-printed JSON array
    """
    if selected_ids:
        chosen = [roadmap for roadmap in roadmaps if roadmap.id in selected_ids]
        scope = "selected"
    else:
        chosen = list(roadmaps)
        scope = "all"

    stamp = (today or date.today()).isoformat()
    content = json.dumps([roadmap.to_wire() for roadmap in chosen], indent=2, ensure_ascii=False)
    logger.info("Roadmaps exported", scope=scope, count=len(chosen))
    return ExportDocument(filename=f"roadmaps-{scope}-{stamp}.json", content=content, count=len(chosen))


def import_roadmaps(raw: str) -> list[Roadmap]:
    """Parse an uploaded export.

    Args:
        raw: JSON text

    Returns:
        Parsed roadmaps in document order

    Raises:
        ImportFormatError: If the text is not JSON, the top-level value is not
            an array, or an element is not an object with ``id`` and ``title``
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid JSON: {e.msg}") from e

    if not isinstance(data, list):
        raise ImportFormatError("Import file must contain a JSON array of roadmaps")

    roadmaps = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ImportFormatError(f"Element {index} is not an object")
        missing = [key for key in REQUIRED_IMPORT_KEYS if key not in item]
        if missing:
            raise ImportFormatError(f"Element {index} is missing {', '.join(missing)}")
        try:
            roadmaps.append(Roadmap.model_validate(item))
        except pydantic.ValidationError as e:
            raise ImportFormatError(f"Element {index} could not be read: {e.error_count()} errors") from e

    logger.info("Roadmaps parsed for import", count=len(roadmaps))
    return roadmaps
