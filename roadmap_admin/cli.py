"""Command-line entry point for roadmap administration."""

import argparse
import asyncio
import sys
from pathlib import Path

from roadmap_admin import __version__
from roadmap_admin.core.config import get_settings
from roadmap_admin.core.errors import RoadmapAdminError
from roadmap_admin.core.logging import configure_logging, get_logger
from roadmap_admin.schemas.roadmap import ROADMAP_STATUSES
from roadmap_admin.services.api_client import RoadmapApiClient
from roadmap_admin.services.roadmap_store import RoadmapStore
from roadmap_admin.services.search import Highlight, filter_roadmaps, highlight

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roadmap-admin", description="Manage learning roadmaps")
    parser.add_argument("--api-url", help="Override API_BASE_URL")
    parser.add_argument("--debug", action="store_true", help="Human-readable debug logging")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List roadmaps")
    list_cmd.add_argument("--search", default="", help="Match titles at any depth")
    list_cmd.add_argument("--status", choices=ROADMAP_STATUSES)

    sub.add_parser("stats", help="Show aggregate counts")

    export_cmd = sub.add_parser("export", help="Export roadmaps to a JSON file")
    export_cmd.add_argument("--id", dest="ids", action="append", default=[], help="Roadmap id (repeatable)")
    export_cmd.add_argument("--out", type=Path, help="Output directory (default: EXPORT_DIR)")

    import_cmd = sub.add_parser("import", help="Import roadmaps from a JSON export")
    import_cmd.add_argument("file", type=Path)
    import_cmd.add_argument("--save", action="store_true", help="Persist each imported roadmap")
    return parser


def _render_title(title: str, term: str) -> str:
    parts = highlight(title, term)
    if isinstance(parts, Highlight):
        return f"{parts.before}[{parts.match}]{parts.after}"
    return parts


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    base_url = args.api_url or settings.API_BASE_URL

    async with RoadmapApiClient(base_url, token=settings.API_TOKEN, timeout=settings.REQUEST_TIMEOUT) as api:
        store = RoadmapStore(api)

        if args.command == "stats":
            stats = await store.stats()
            print(f"Roadmaps:   {stats.total_roadmaps}")
            print(f"Levels:     {stats.total_levels}")
            print(f"Milestones: {stats.total_milestones}")
            print(f"Challenges: {stats.total_challenges}")
            return 0

        if args.command == "import":
            imported = store.import_json(args.file.read_text(encoding="utf-8"))
            print(f"Read {len(imported)} roadmaps from {args.file}")
            if not args.save:
                return 0
            failed = 0
            for roadmap in imported:
                try:
                    await store.save_roadmap(roadmap.id)
                except RoadmapAdminError as e:
                    failed += 1
                    logger.warning("Import save failed", roadmap_id=roadmap.id, error=e.message)
            print(f"Saved {len(imported) - failed}, failed {failed}")
            return 1 if failed else 0

        await store.load()

        if args.command == "list":
            for roadmap in filter_roadmaps(store.roadmaps, args.search, args.status):
                print(f"{roadmap.id}\t{roadmap.status}\t{_render_title(roadmap.title, args.search)}")
            return 0

        if args.command == "export":
            document = store.export_json(args.ids)
            out_dir = args.out or settings.EXPORT_DIR
            out_dir.mkdir(parents=True, exist_ok=True)
            target = out_dir / document.filename
            target.write_text(document.content, encoding="utf-8")
            print(f"Exported {document.count} roadmaps to {target}")
            return 0

    return 2


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug or get_settings().DEBUG)
    try:
        return asyncio.run(run(args))
    except RoadmapAdminError as e:
        print(f"Error ({e.kind.value}): {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
