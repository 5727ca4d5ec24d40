"""
Command Line Interface for SafeScribe
=====================================

This module provides the command-line interface for turning consultation
transcripts into safety-reviewed SOAP notes.

Usage:
------
    # Process a transcript file
    safescribe consultation.txt

    # Process with options
    safescribe consultation.txt --output ./results --verbose

    # Check a transcript without generating anything
    safescribe consultation.txt --validate-only

    # Process text directly
    safescribe --text "Patient: I have had a cough for a week."

    # Offline dry run (no provider calls)
    safescribe consultation.txt --mock --no-save

Exit codes:
-----------
    0    success
    1    processing or configuration error
    2    invalid input (empty, too long, unreadable file)
    130  interrupted
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from config import Settings, configure_logging, get_settings
from core.llm_provider import create_generation_provider
from core.pipeline import TranscriptPipeline, save_result_to_file
from exceptions import InputValidationError, SafeScribeError
from models import ProcessingResult, SafetyFlags


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130


# ANSI colors for terminal output
class Colors:
    """ANSI color codes for pretty terminal output."""
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def colorize(text: str, color: str) -> str:
    """Add color to text if terminal supports it."""
    if sys.stdout.isatty():
        return f"{color}{text}{Colors.ENDC}"
    return text


def print_banner():
    banner = """
    ┌──────────────────────────────────────────────┐
    │                 S A F E S C R I B E          │
    │                                              │
    │      Transcript → SOAP Note → Coding Hints   │
    │      Draft output for clinician review       │
    └──────────────────────────────────────────────┘
    """
    print(colorize(banner, Colors.CYAN))


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    This defines all CLI options and their help text.
    """
    parser = argparse.ArgumentParser(
        prog="safescribe",
        description="Convert consultation transcripts to safety-reviewed SOAP notes",
        epilog="Example: safescribe consultation.txt --output ./notes",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Positional argument: transcript file
    parser.add_argument(
        "transcript_file",
        nargs="?",  # Optional (can use --text instead)
        help="Path to a text file containing the transcript"
    )

    # Alternative input: direct text
    parser.add_argument(
        "--text", "-t",
        type=str,
        help="Process transcript text directly instead of a file"
    )

    # Processing options
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate the transcript and scan for emergency terms"
    )

    # Output options
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output directory for results (default: settings output_dir)"
    )

    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Don't save results to files, just print"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output result as JSON"
    )

    # Provider options
    parser.add_argument(
        "--provider",
        type=str,
        choices=["ollama", "openai"],
        help="Generation provider (overrides config)"
    )

    parser.add_argument(
        "--model",
        type=str,
        help="Model name for the selected provider (overrides config)"
    )

    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the offline mock provider (fallback note and codes)"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output with debug info"
    )

    parser.add_argument(
        "--no-banner",
        action="store_true",
        help="Don't show the banner"
    )

    return parser


def setup_logging_for_cli(verbose: bool, quiet: bool, settings: Settings) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    configure_logging(settings, level=level)


def build_settings(parsed_args: argparse.Namespace) -> Settings:
    """
    Apply --provider and --model on top of the configured settings.

    --model applies to whichever provider ends up selected.
    """
    settings = get_settings()
    overrides = {}

    if parsed_args.provider:
        overrides["llm_provider"] = parsed_args.provider

    provider = overrides.get("llm_provider", settings.llm_provider)
    if parsed_args.model:
        overrides[f"{provider}_model"] = parsed_args.model

    if not overrides:
        return settings
    return settings.model_copy(update=overrides)


def read_transcript(parsed_args: argparse.Namespace) -> str:
    """
    Return the transcript from --text or the transcript file.

    Raises:
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not UTF-8 text
    """
    if parsed_args.text is not None:
        return parsed_args.text
    return Path(parsed_args.transcript_file).read_text(encoding="utf-8")


def print_safety_flags(flags: SafetyFlags) -> None:
    if flags.high_risk:
        terms = ", ".join(flags.emergency_terms)
        print(colorize(f"⚠  HIGH RISK - emergency terms found: {terms}", Colors.RED))
    else:
        print(colorize("No emergency terms found", Colors.GREEN))

    if flags.modified_claims:
        claims = ", ".join(f'"{claim}"' for claim in flags.modified_claims)
        print(colorize(f"Softened absolute claims: {claims}", Colors.YELLOW))


def print_result(result: ProcessingResult) -> None:
    """Human-readable result: note, coding, flags and decision log."""
    print(result.soap_note.to_formatted_string())

    coding = result.coding_suggestions
    print(colorize("\n─── CODING SUGGESTIONS ───\n", Colors.HEADER))
    for icd in coding.icd_codes:
        print(f"  ICD-10 {icd.code:<8} {icd.description} "
              f"[{icd.confidence}, relevance {icd.relevance_score:.2f}]")
    for cpt in coding.cpt_codes:
        print(f"  CPT    {cpt.code:<8} {cpt.description} [{cpt.confidence}]")
    hint = coding.billing_hint
    print(f"  Billing ({hint.type}): {hint.suggestion}")
    print(f"    {hint.justification}")

    print(colorize("\n─── SAFETY ───\n", Colors.HEADER))
    print_safety_flags(result.safety_flags)

    print(colorize("\n─── DECISION LOG ───\n", Colors.HEADER))
    for entry in result.decision_log:
        print(f"  [{entry.step}] {entry.description}")

    print(colorize(f"\n[Processing time: {result.processing_time_ms}ms]", Colors.CYAN))


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    # Validate input
    if not parsed_args.transcript_file and parsed_args.text is None:
        parser.error("Either transcript_file or --text is required")

    if parsed_args.transcript_file and parsed_args.text is not None:
        parser.error("Use either transcript_file or --text, not both")

    settings = build_settings(parsed_args)

    setup_logging_for_cli(parsed_args.verbose, parsed_args.quiet, settings)

    # Show banner unless suppressed
    if not parsed_args.no_banner and not parsed_args.quiet and not parsed_args.json:
        print_banner()

    try:
        transcript = read_transcript(parsed_args)
    except (OSError, UnicodeDecodeError) as e:
        print(colorize(f"\n❌ Cannot read transcript: {e}", Colors.RED))
        return EXIT_INVALID_INPUT

    try:
        if parsed_args.validate_only:
            # No provider needed to validate
            pipeline = TranscriptPipeline(settings=settings)
            flags = pipeline.validate_transcript(transcript)
            if parsed_args.json:
                print(json.dumps({"success": True, "validation": flags.model_dump()}, indent=2))
            else:
                print(colorize(f"Transcript OK ({len(transcript)} characters)", Colors.GREEN))
                print_safety_flags(flags)
            return EXIT_OK

        # Resolve the provider up front so configuration errors surface as such
        provider = create_generation_provider(settings, use_mock=parsed_args.mock)
        pipeline = TranscriptPipeline(settings=settings, provider=provider)

        if not parsed_args.quiet and not parsed_args.json:
            print(colorize("\n📝 Processing transcript...\n", Colors.CYAN))

        result = pipeline.process(transcript)

        # Output results
        if parsed_args.json:
            print(json.dumps(result.model_dump(mode='json'), indent=2))
        else:
            print_result(result)

        # Save if requested
        if not parsed_args.no_save:
            output_dir = parsed_args.output or settings.output_dir
            saved = save_result_to_file(result, output_dir)
            if not parsed_args.quiet and not parsed_args.json:
                print(colorize(f"\n💾 Results saved to: {output_dir}", Colors.GREEN))
                for file_type, path in saved.items():
                    print(f"   • {file_type}: {path}")

        if not parsed_args.quiet and not parsed_args.json:
            print(colorize("\n✅ Done!\n", Colors.GREEN))

        return EXIT_OK

    except InputValidationError as e:
        print(colorize(f"\n❌ Invalid transcript: {e.message}", Colors.RED))
        return EXIT_INVALID_INPUT

    except SafeScribeError as e:
        print(colorize(f"\n❌ Error: {e.message}", Colors.RED))
        if parsed_args.verbose and e.details:
            print(colorize(f"   Details: {e.details}", Colors.YELLOW))
        if parsed_args.verbose and e.decision_log:
            for entry in e.decision_log:
                print(colorize(f"   [{entry.step}] {entry.description}", Colors.YELLOW))
        return EXIT_ERROR

    except KeyboardInterrupt:
        print(colorize("\n\n⚠️  Interrupted by user", Colors.YELLOW))
        return EXIT_INTERRUPTED

    except Exception as e:
        print(colorize(f"\n❌ Unexpected error: {e}", Colors.RED))
        if parsed_args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
