#!/usr/bin/env python3
import argparse
import json
import logging
import sys

from .. import llm_client
from .errors import InvalidInputError, VisionServiceError
from .pipeline import extract


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _build_arg_parser():
    p = argparse.ArgumentParser(
        prog="card-intake",
        description="Extract a structured patient record from an ID or insurance card.",
    )
    source = p.add_mutually_exclusive_group()
    source.add_argument(
        "--text",
        type=str,
        help="File holding a vision model's reply text ('-' reads stdin).",
    )
    source.add_argument(
        "--envelope",
        type=str,
        help="JSON file holding a raw provider response (e.g. a chat completion).",
    )
    source.add_argument(
        "--image", type=str, help="Card image to send to the vision model."
    )
    p.add_argument(
        "--provider",
        choices=list(llm_client.SUPPORTED_PROVIDERS),
        default=None,
        help="Vision provider to use with --image (grok, openai, ollama).",
    )
    p.add_argument("--model", type=str, default=None, help="Override the model name.")
    p.add_argument(
        "--test-api", action="store_true", help="Test vision provider connectivity."
    )
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return p


def main(argv=None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.test_api:
            llm_client.test_provider(args.provider)
            return 0

        if args.text:
            content = _read_text(args.text)
        elif args.envelope:
            with open(args.envelope, "r", encoding="utf-8") as f:
                envelope = json.load(f)
            content = llm_client.text_from_envelope(envelope)
        elif args.image:
            image_data = llm_client.load_image_as_data_url(args.image)
            content = llm_client.scan_card_image(
                image_data, provider=args.provider, model=args.model
            )
        else:
            parser.error("one of --text, --envelope or --image is required")

        record = extract(content)
    except (InvalidInputError, VisionServiceError, OSError, json.JSONDecodeError) as e:
        logging.error(f"Card extraction failed: {e}")
        return 1

    if record.is_empty():
        logging.warning(
            "No information could be extracted from the card; enter the details manually."
        )
    print(json.dumps(record.to_dict(), ensure_ascii=False, indent=4))
    return 0


if __name__ == "__main__":
    sys.exit(main())
