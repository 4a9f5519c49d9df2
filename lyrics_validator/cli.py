"""Command-line entry point: validate a lyrics payload and print the JSON report."""

import argparse
import json
import sys
from pathlib import Path

from lyrics_validator.utils import configure_logging, get_feedback_path, load_genre_config
from lyrics_validator.validation.feedback import JsonFeedbackStore
from lyrics_validator.validation.validator import DEFAULT_TIME_SIGNATURE, analyze_lyrics

EMPTY_PAYLOAD = {"title": "", "lyrics": "", "genre": "", "timeSignature": DEFAULT_TIME_SIGNATURE}
PAYLOAD_STRING_FIELDS = ("title", "lyrics", "genre", "timeSignature")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lyrics-validator",
        description="Score Portuguese lyrics for grammar, rhyme, meter and coherence",
    )
    parser.add_argument("--in", dest="input", metavar="PATH",
                        help="JSON payload with title, lyrics, genre, timeSignature (default: stdin)")
    parser.add_argument("--out", dest="output", metavar="PATH",
                        help="Also write the report to this file")
    parser.add_argument("--genre", help="Override the payload genre")
    parser.add_argument("--time", dest="time_signature", help="Override the payload time signature")
    parser.add_argument("--state", metavar="PATH",
                        help="Feedback state file (default: LYRICS_FEEDBACK_PATH or data/lyrics_feedback.json)")
    parser.add_argument("--genres", metavar="PATH",
                        help="Genre config YAML (default: LYRICS_GENRES_PATH or config/genres.yaml)")
    return parser


def read_payload(input_path: str | None) -> dict:
    """Read the payload from a file or stdin. Empty stdin gives an empty payload."""
    if input_path:
        with open(Path(input_path), "r", encoding="utf-8") as f:
            raw = f.read()
    else:
        raw = sys.stdin.read()

    if not raw.strip():
        return dict(EMPTY_PAYLOAD)
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("payload must be a JSON object")
    for key in PAYLOAD_STRING_FIELDS:
        value = payload.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"'{key}' must be a string")
    return payload


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        payload = read_payload(args.input)
    except (OSError, ValueError) as e:
        print(f"Error: could not read input: {e}", file=sys.stderr)
        return 1

    genres_path = Path(args.genres) if args.genres else None
    store = JsonFeedbackStore(Path(args.state) if args.state else get_feedback_path())

    report = analyze_lyrics(
        str(payload.get("lyrics") or ""),
        genre=args.genre or payload.get("genre"),
        time_signature=args.time_signature or payload.get("timeSignature"),
        title=payload.get("title") or "",
        genre_lookup=lambda name: load_genre_config(name, genres_path),
        store=store,
    )
    output = json.dumps(report.to_dict(), ensure_ascii=False, indent=2)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(output)

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
