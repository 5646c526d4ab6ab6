"""
Collectibles Appraiser — One-shot Appraisal Script

Runs the full pipeline once, outside the HTTP server, and prints the payload.
Handy for checking credentials and upstream behavior from a shell.

Usage:
    python scripts/appraise.py --question "PSA 10 Charizard base set 4/102"
    python scripts/appraise.py --question "Super Metroid SNES" --context "cart only" --depth minimal
    python scripts/appraise.py --image ./photos/stamp.jpg
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import os
import sys
from pathlib import Path

# Resolve project root so this script can be run from any working directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.config import Depth, settings
from src.errors import AppraisalError
from src.main import configure_logging
from src.models.appraisal import FileInfo
from src.oracle.client import ImageInput
from src.pipeline.orchestrator import AppraisalPipeline, build_prompt


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Appraise one collectible from a question or a photo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/appraise.py --question "PSA 10 Charizard base set 4/102"
  python scripts/appraise.py --image ./photos/stamp.jpg --depth minimal
""",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--question",
        type=str,
        help="Free-text description of the item.",
    )
    source.add_argument(
        "--image",
        type=Path,
        help="Path to a photo of the item (jpeg, png, gif or webp).",
    )
    parser.add_argument(
        "--context",
        type=str,
        default=None,
        help="Extra free-text context appended to the question.",
    )
    parser.add_argument(
        "--depth",
        type=str,
        default=Depth.FULL.value,
        choices=[d.value for d in Depth],
        help="full = extract, enrich, fuse, report; minimal = extract and report only.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Log level for pipeline events written to stdout (default: WARNING).",
    )
    return parser.parse_args()


def load_image(path: Path) -> tuple[ImageInput, FileInfo]:
    data = path.read_bytes()
    media_type = mimetypes.guess_type(path.name)[0] or settings.DEFAULT_IMAGE_TYPE
    return (
        ImageInput(data=data, media_type=media_type),
        FileInfo(name=path.name, type=media_type, size=len(data)),
    )


async def main() -> None:
    args = parse_args()
    configure_logging(log_level=args.log_level)
    pipeline = AppraisalPipeline()

    try:
        if args.image is not None:
            image, file_info = load_image(args.image)
            response = await pipeline.run(image=image, depth=Depth(args.depth), file_info=file_info)
        else:
            response = await pipeline.run(
                prompt=build_prompt(args.question, args.context),
                depth=Depth(args.depth),
            )
    except AppraisalError as e:
        print(json.dumps({"status": e.status_code, **e.to_dict()}, indent=2), file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Failed to read image: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(response.to_payload(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
