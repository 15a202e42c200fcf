"""Command-line entry point for the typing trainer.

Subcommands:
    prompt   print a practice prompt built from the selected strategy
    stats    print per-character statistics
    compact  fold old keystroke rows into per-character rollups
    reset    delete all recorded statistics
"""

import argparse
import logging
import random
import sys
from typing import List, Optional

from pydantic import ValidationError

from models.corpus import CorpusLoadError, SupportedLanguage
from models.prompt_generator import PromptGenerator, WordGenConfig
from models.trainer_config import ConfigError, TrainerConfig
from services import init_services

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Adaptive typing trainer that focuses practice on your weakest characters."
    )
    parser.add_argument("--state-dir", help="Directory holding stats.db, log.csv and config.json")
    subparsers = parser.add_subparsers(dest="command", required=True)

    prompt = subparsers.add_parser("prompt", help="Print a practice prompt")
    prompt.add_argument("-w", "--number-of-words", type=int, help="Defaults to the saved setting")
    prompt.add_argument("-f", "--full-sentences", type=int, dest="number_of_sentences")
    prompt.add_argument("-p", "--prompt", dest="custom_prompt")
    prompt.add_argument(
        "-l",
        "--language",
        choices=[lang.value for lang in SupportedLanguage],
        help="Defaults to the saved setting",
    )
    # Flags left unset fall back to the saved configuration.
    for flag in ("--random-words", "--substitute", "--capitalize", "--symbols"):
        prompt.add_argument(flag, action="store_true", default=None)
    prompt.add_argument(
        "--save-config", action="store_true", help="Remember these settings as the new defaults"
    )
    prompt.add_argument("--seed", type=int, help="Seed the random generator")

    subparsers.add_parser("stats", help="Show per-character statistics")

    compact = subparsers.add_parser("compact", help="Compact the statistics database")
    compact.add_argument("--older-than-days", type=int, default=30)

    subparsers.add_parser("reset", help="Delete all recorded statistics")
    return parser


def merge_prompt_settings(saved: TrainerConfig, args: argparse.Namespace) -> TrainerConfig:
    """Overlay the prompt options given on the command line onto the saved settings."""
    updates = {
        "number_of_words": args.number_of_words,
        "supported_language": SupportedLanguage(args.language) if args.language else None,
        "random_words": args.random_words,
        "substitute": args.substitute,
        "capitalize": args.capitalize,
        "symbols": args.symbols,
    }
    merged = saved.model_dump()
    merged.update({k: v for k, v in updates.items() if v is not None})
    return TrainerConfig.model_validate(merged)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    store, _, config_store = init_services(args.state_dir)

    try:
        if args.command == "prompt":
            saved = config_store.load() if config_store is not None else TrainerConfig()
            try:
                settings = merge_prompt_settings(saved, args)
            except ValidationError as e:
                print(f"Error: invalid prompt options: {e}", file=sys.stderr)
                return 1
            if args.save_config:
                if config_store is None:
                    print("Error: no state directory to save settings in", file=sys.stderr)
                    return 1
                try:
                    config_store.save(settings)
                except ConfigError as e:
                    print(f"Error: {e}", file=sys.stderr)
                    return 1
            config = WordGenConfig(
                number_of_words=settings.number_of_words,
                number_of_sentences=args.number_of_sentences,
                custom_prompt=args.custom_prompt,
                language=settings.supported_language,
                random_words=settings.random_words,
                substitute=settings.substitute,
                capitalize=settings.capitalize,
                symbols=settings.symbols,
            )
            rng = random.Random(args.seed) if args.seed is not None else None
            try:
                text, _ = PromptGenerator(config, store=store, rng=rng).generate_prompt()
            except CorpusLoadError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            print(text)
            return 0

        if store is None:
            print("Character statistics are unavailable.", file=sys.stderr)
            return 1

        if args.command == "stats":
            summaries = store.all_character_summaries()
            if not summaries:
                print("No character statistics recorded yet.")
            for summary in summaries.values():
                print(
                    f"{summary.character!r:>6}  {summary.avg_time_ms:8.1f} ms  "
                    f"{summary.miss_rate:6.1f}% miss  {summary.attempts:6d} attempts"
                )
        elif args.command == "compact":
            moved = store.compact(older_than_days=args.older_than_days)
            rows, _, size_mb = store.compaction_info()
            print(f"Compacted {moved} rows; {rows} raw rows remain ({size_mb:.2f} MiB).")
        elif args.command == "reset":
            store.clear()
            print("All character statistics deleted.")
        return 0
    finally:
        if store is not None:
            store.close()


if __name__ == "__main__":
    sys.exit(main())
