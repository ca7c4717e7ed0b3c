#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from ocr_engine_cli.batch import BatchOCR
from ocr_engine_cli.config import load_config
from ocr_engine_cli.errors import EngineError
from ocr_engine_cli.session import EngineSession
from ocr_engine_cli.utils.logging import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OCR local images through a PaddleOCR-json style engine.")
    parser.add_argument("inputs", nargs="*", help="Images, directories or PDFs.")
    parser.add_argument("--clipboard", action="store_true", help="OCR the image on the clipboard.")
    parser.add_argument("--engine", type=Path, default=None, help="Path to the engine executable.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to engine.yaml",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write one JSON result per input here instead of printing text.",
    )
    args = parser.parse_args()
    if not args.inputs and not args.clipboard:
        parser.error("give at least one input or --clipboard")
    return args


def main() -> int:
    args = parse_args()
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config, exe_path=args.engine)
    if args.timeout is not None:
        config = config.with_overrides(request_timeout=args.timeout)

    started = time.perf_counter()
    try:
        with BatchOCR(session=EngineSession(config)) as runner:
            if args.clipboard:
                result = runner.session.ocr_clipboard()
                print(result.text if result.ok else f"[{result.code}] {result.message}")
            if args.output_dir:
                args.output_dir.mkdir(parents=True, exist_ok=True)
            for input_path in args.inputs:
                path = Path(input_path)
                output = runner.run(path)
                if args.output_dir:
                    output_path = args.output_dir / f"{path.stem}.json"
                    output_path.write_text(
                        json.dumps(output.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
                    )
                    print(f"Processed {path} -> {output_path}")
                else:
                    print(output.text)
    except EngineError as exc:
        print(f"OCR engine error: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"Input error: {exc}", file=sys.stderr)
        return 1
    print(f"Elapsed: {time.perf_counter() - started:.2f}s", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
