from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from modules.errors import PreviewError
from modules.media import ImageArtifact
from modules.storage.keys import derive_keys
from services.api.app import configure_logging
from services.api.config import get_settings
from services.api.deps import build_pipeline, new_http_client


def cmd_keys(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        keys = derive_keys(args.site, prefix=settings.key_prefix, fmt=settings.image_format)
    except PreviewError as exc:
        print(json.dumps({"error": {"code": exc.code, "message": str(exc)}}), file=sys.stderr)
        return 2
    print(json.dumps({"site": args.site, "raw": keys.raw, "final": keys.final}, ensure_ascii=False))
    return 0


async def _render(site: str) -> ImageArtifact:
    settings = get_settings()
    async with new_http_client(settings) as http:
        pipeline = build_pipeline(settings, http)
        return await pipeline.run(site)


def cmd_render(args: argparse.Namespace) -> int:
    try:
        artifact = asyncio.run(_render(args.site))
    except PreviewError as exc:
        print(json.dumps({"error": {"code": exc.code, "message": str(exc)}}), file=sys.stderr)
        return 2 if exc.code == "invalid_input" else 3
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(artifact.data)
    print(json.dumps({"site": args.site, "out": str(out), "content_type": artifact.content_type, "bytes": artifact.size}))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ogforge", description="og-forge CLI")
    sp = p.add_subparsers(dest="cmd")

    p_keys = sp.add_parser("keys", help="Show the storage keys for a site")
    p_keys.add_argument("site", help="Site URL or hostname")
    p_keys.set_defaults(func=cmd_keys)

    p_render = sp.add_parser("render", help="Get or build the preview image for a site")
    p_render.add_argument("site", help="Site URL or hostname")
    p_render.add_argument("--out", default="og.png", help="Output file path")
    p_render.set_defaults(func=cmd_render)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if not hasattr(ns, "func"):
        parser.print_help()
        return 1
    configure_logging(get_settings().log_level)
    return int(ns.func(ns))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
