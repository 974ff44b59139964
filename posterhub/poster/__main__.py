# posterhub/poster/__main__.py
import argparse
import json
from pathlib import Path
from typing import List, Optional

from posterhub.config import configure_logging

from .model import default_document
from .renderer import RenderMode, render_from_json_file


def cmd_render(args: argparse.Namespace) -> int:
    mode = RenderMode.PREVIEW if args.preview else RenderMode.EXPORT
    out = render_from_json_file(
        Path(args.config),
        out_name=args.out,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        background_path=Path(args.background) if args.background else None,
        mode=mode,
    )
    # Pfad immer ausgeben (pipe-bar)
    print(out)
    return 0


def cmd_defaults(args: argparse.Namespace) -> int:
    print(json.dumps(default_document().to_dict(), indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="posterhub.poster",
        description="Render poster configs (JSON) to PNG.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    rnd = sub.add_parser("render", help="Render a poster config JSON to PNG")
    rnd.add_argument("config", help="Path to poster config JSON")
    rnd.add_argument("--out", type=str, default=None, help="Output file name (default: poster_<ts>_<slug>.png)")
    rnd.add_argument("--output-dir", type=str, default=None, help="Output directory (default: POSTER_OUTPUT_DIR)")
    rnd.add_argument("--background", type=str, default=None, help="Background image (default: gradient)")
    rnd.add_argument("--preview", action="store_true", help="Render with editor grid instead of export look")
    rnd.set_defaults(func=cmd_render)

    dflt = sub.add_parser("defaults", help="Print the default poster config as JSON")
    dflt.set_defaults(func=cmd_defaults)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
