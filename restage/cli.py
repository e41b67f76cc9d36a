#!/usr/bin/env python3
"""
RESTAGE command line runner.
Checks reference photos, replaces the product in a marketing image, and lets
the user approve the result or retry with feedback.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from restage import log_setup
from restage.config import Settings
from restage.errors import GenerationError, RestageError
from restage.gate import Resolution
from restage.images import ImageFile
from restage.pipeline import MAX_PRODUCT_IMAGES, ReplacementPipeline
from restage.report import save_failure, save_outcome

EXIT_UNSUITABLE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restage",
        description="Replace the product in a marketing image with your own product.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Dotenv file with GEMINI_API_KEY (default: .env)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write a DEBUG log to this file",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Only check whether the product photos are suitable")
    check.add_argument(
        "-p", "--product",
        type=Path,
        action="append",
        required=True,
        help=f"Product reference image (repeat, 1-{MAX_PRODUCT_IMAGES})",
    )

    run = subparsers.add_parser("run", help="Run the full product replacement")
    run.add_argument(
        "-p", "--product",
        type=Path,
        action="append",
        required=True,
        help=f"Product reference image (repeat, 1-{MAX_PRODUCT_IMAGES})",
    )
    run.add_argument(
        "-t", "--target",
        type=Path,
        required=True,
        help="Marketing image containing the product to replace",
    )
    run.add_argument(
        "-o", "--out",
        type=Path,
        default=Path("results"),
        help="Directory for result entries (default: results/)",
    )
    run.add_argument(
        "--feedback",
        default=None,
        help="Feedback on a previous attempt (skips the quality check)",
    )
    run.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Continue automatically when the quality check warns",
    )
    run.add_argument(
        "--no-review",
        action="store_true",
        help="Do not ask to approve or reject the result",
    )
    return parser


def load_images(paths: List[Path]) -> List[ImageFile]:
    return [ImageFile.from_path(path) for path in paths]


def ask_yes_no(question: str, default: bool = False) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    answer = input(question + suffix).strip().lower()
    if not answer:
        return default
    return answer in {"y", "yes"}


def print_progress(message: str):
    print(f"  {message}")


def make_warning_handler(assume_yes: bool):
    """Checkpoint handler: show the quality warning and ask whether to continue."""
    def on_warning(reasoning: str) -> Resolution:
        print("\n  Warning: the product images may not be suitable.")
        print(f"  {reasoning}\n")
        if assume_yes:
            print("  Continuing (--yes)")
            return Resolution.CONTINUE
        if ask_yes_no("  Continue anyway?"):
            return Resolution.CONTINUE
        return Resolution.CANCEL
    return on_warning


def cmd_check(args, settings: Settings) -> int:
    pipeline = ReplacementPipeline(settings)
    products = load_images(args.product)

    verdict = pipeline.check_reference_quality(products)
    status = "Suitable" if verdict.suitable else "Not suitable"
    print(f"{status}: {verdict.reasoning}")
    return 0 if verdict.suitable else EXIT_UNSUITABLE


def cmd_run(args, settings: Settings) -> int:
    pipeline = ReplacementPipeline(settings)
    products = load_images(args.product)
    target = load_images([args.target])[0]

    feedback = args.feedback
    attempt = 1

    while True:
        print(f"\n{'='*60}")
        print(f"Attempt {attempt}" + (" (with feedback)" if feedback else ""))
        print(f"{'='*60}\n")

        try:
            outcome = pipeline.run_replacement(
                products,
                target,
                feedback=feedback,
                on_progress=print_progress,
                on_warning=make_warning_handler(args.yes),
            )
        except GenerationError as e:
            print(f"\n✗ {e}", file=sys.stderr)
            failure_dir = save_failure(e, args.out)
            print(f"  Process log: {failure_dir / 'log.html'}", file=sys.stderr)
            if args.no_review:
                return 1
            feedback = input("Try again with feedback? (empty to stop): ").strip()
            if not feedback:
                return 1
            attempt += 1
            continue

        if outcome is None:
            print("\nCancelled. No image was generated.")
            return 0

        entry_dir = save_outcome(outcome, target, args.out)

        print(f"\n✓ Image generated: {entry_dir}")
        if outcome.final_text:
            print(f"\n  Editor: {outcome.final_text.strip()}")
        print(f"\n  Quality check: {outcome.quality_critique}")
        print(f"  Process log: {entry_dir / 'log.html'}")

        if args.no_review:
            return 0

        print()
        if ask_yes_no("Approve this result?", default=True):
            print("Approved.")
            return 0

        feedback = input("Why are you rejecting this image? (empty to stop): ").strip()
        if not feedback:
            return 0
        attempt += 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(args.env_file)
    log_setup.configure(args.log_level, args.log_file)

    try:
        settings = Settings.from_env()
        if args.command == "check":
            return cmd_check(args, settings)
        return cmd_run(args, settings)
    except RestageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
