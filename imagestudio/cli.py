"""
Command-line client that runs requests on this device and keeps local history.

Usage:
    imagestudio generate "a red fox in snow" --model openai/dall-e-3
    imagestudio edit photo.png --prompt "add a hat" --model openai/gpt-image-1
    imagestudio vary photo.png --n 3
    imagestudio history list --limit 20
    imagestudio history delete <record_id>
    imagestudio history clear
"""

import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

from imagestudio.adapters.base import (
    EditImageParams,
    GeneratedImage,
    GenerateImageParams,
    InputImage,
    VariationImageParams,
)
from imagestudio.config import settings
from imagestudio.constants import (
    DEFAULT_EDIT_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_RESPONSE_FORMAT,
    DEFAULT_VARIATION_MODEL,
    GEMINI_IMAGE,
    IMAGEN,
    PROVIDER_GOOGLE,
    PROVIDER_OPENAI,
)
from imagestudio.services.generation import GenerationOutcome, GenerationService
from imagestudio.storage.history import HistoryRecord, HistoryRecorder, HistoryStore

logger = logging.getLogger(__name__)


def load_image(path: Path) -> InputImage:
    """Read an image file into a base64 InputImage."""
    mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return InputImage(mime_type=mime_type, data=data)


def save_images(images: list[GeneratedImage], output_dir: Path, stem: str) -> list[str]:
    """Write base64 images to ``output_dir``; hosted URLs are returned as-is."""
    output_dir.mkdir(parents=True, exist_ok=True)
    saved: list[str] = []
    for index, image in enumerate(images, start=1):
        if image.b64_json:
            target = output_dir / f"{stem}-{index}.png"
            target.write_bytes(base64.b64decode(image.b64_json))
            saved.append(str(target))
        elif image.url:
            saved.append(image.url)
    return saved


def format_record(record: HistoryRecord) -> str:
    created = datetime.fromtimestamp(record.created_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
    status = f"{len(record.images)} image(s)" if record.succeeded else f"error: {record.error}"
    return f"{record.id}  {created}  {record.model}  {status}\n    {record.prompt}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagestudio", description="Generate images with OpenAI and Google models"
    )
    parser.add_argument("--db", help="History database URL (default: HISTORY_DB_URL)")
    parser.add_argument("--api-key", help="API key for this call (overrides the environment)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate images from a prompt")
    generate.add_argument("prompt", help="Text description of the image")
    generate.add_argument(
        "--model",
        default=f"{PROVIDER_OPENAI}/{DEFAULT_OPENAI_MODEL}",
        help=(
            f"<provider>/<modelId>, e.g. {PROVIDER_GOOGLE}/{GEMINI_IMAGE} "
            f"or {PROVIDER_GOOGLE}/{IMAGEN}"
        ),
    )
    generate.add_argument("--n", type=int, help="Number of images")
    generate.add_argument("--size", help="Image dimensions, e.g. 1024x1024")
    generate.add_argument("--quality", help="Quality hint (OpenAI)")
    generate.add_argument("--aspect-ratio", help="Aspect ratio (Imagen)")
    generate.add_argument("--stream", action="store_true", help="Stream (gpt-image-1)")
    generate.add_argument(
        "--image", action="append", type=Path, default=[], help="Input image (Gemini)"
    )
    generate.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    edit = subparsers.add_parser("edit", help="Edit images with a prompt")
    edit.add_argument("images", nargs="+", type=Path, help="Images to edit")
    edit.add_argument("--prompt", required=True, help="Edit instruction")
    edit.add_argument("--model", default=f"{PROVIDER_OPENAI}/{DEFAULT_EDIT_MODEL}")
    edit.add_argument("--n", type=int, help="Number of images")
    edit.add_argument("--size", help="Image dimensions")
    edit.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    vary = subparsers.add_parser("vary", help="Create variations of an image")
    vary.add_argument("image", type=Path, help="Source image")
    vary.add_argument("--model", default=f"{PROVIDER_OPENAI}/{DEFAULT_VARIATION_MODEL}")
    vary.add_argument("--n", type=int, default=1, help="Number of variations (1-10)")
    vary.add_argument("--size", help="Image dimensions")
    vary.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    history = subparsers.add_parser("history", help="Manage local history")
    history_commands = history.add_subparsers(dest="history_command", required=True)
    history_list = history_commands.add_parser("list", help="List recent records")
    history_list.add_argument("--limit", type=int, default=settings.history_limit)
    history_delete = history_commands.add_parser("delete", help="Delete one record")
    history_delete.add_argument("record_id")
    history_commands.add_parser("clear", help="Delete every record")

    return parser


async def run_request(args: argparse.Namespace, service: GenerationService) -> GenerationOutcome:
    if args.command == "generate":
        params = GenerateImageParams(
            prompt=args.prompt,
            n=args.n,
            size=args.size,
            quality=args.quality,
            aspect_ratio=args.aspect_ratio,
            stream=args.stream,
            images=[load_image(path) for path in args.image],
            response_format=DEFAULT_RESPONSE_FORMAT,
        )
        return await service.generate(args.model, params, api_key=args.api_key)

    if args.command == "edit":
        images = [load_image(path) for path in args.images]
        edit_params = EditImageParams(
            image=images[0] if len(images) == 1 else images,
            prompt=args.prompt,
            n=args.n,
            size=args.size,
        )
        return await service.edit(args.model, edit_params, api_key=args.api_key)

    variation_params = VariationImageParams(
        image=load_image(args.image),
        n=args.n,
        size=args.size,
        response_format=DEFAULT_RESPONSE_FORMAT,
    )
    return await service.create_variation(args.model, variation_params, api_key=args.api_key)


async def run_history(args: argparse.Namespace, store: HistoryStore) -> int:
    if args.history_command == "list":
        records = await store.list(args.limit)
        if not records:
            print("No history")
        for record in records:
            print(format_record(record))
    elif args.history_command == "delete":
        await store.delete(args.record_id)
        print(f"Deleted {args.record_id}")
    else:
        await store.clear()
        print("History cleared")
    return 0


async def run(args: argparse.Namespace, store: HistoryStore) -> int:
    if args.command == "history":
        return await run_history(args, store)

    recorder = HistoryRecorder(store)
    service = GenerationService(recorder=recorder)
    try:
        outcome = await run_request(args, service)
    except OSError as e:
        print(f"Cannot read image: {e}", file=sys.stderr)
        return 2
    finally:
        await recorder.drain()

    if outcome.error:
        print(f"Request failed: {outcome.error}", file=sys.stderr)
        return 1
    if not outcome.images:
        print("No images were returned", file=sys.stderr)
        return 1

    stem = outcome.record.id if outcome.record else args.command
    for location in save_images(outcome.images, args.out, stem):
        print(location)
    return 0


async def _main(args: argparse.Namespace) -> int:
    store = HistoryStore.from_url(args.db) if args.db else HistoryStore()
    try:
        return await run(args, store)
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
