import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from .config import Settings
from .errors import FetchError
from .extract import STRATEGY_REGISTRY
from .models import ExtractorConfig
from .scraper import DCRegsScraper, error_envelope
from .utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape DC Register notices and issues into regulation records")
    parser.add_argument("--input", type=str, help="Extract from a saved HTML file instead of fetching")
    parser.add_argument("--url", type=str, help="Page to fetch (default: DCREGS_SOURCE_URL or the issue list)")
    parser.add_argument("--limit", type=int, default=20, help="Maximum number of records in the output")
    parser.add_argument("--debug", action="store_true", help="Skip extraction and print a raw sample of the page")
    parser.add_argument("--output", type=str, help="Write the JSON envelope to this file instead of stdout")
    parser.add_argument(
        "--strategies",
        type=str,
        help="Comma-separated extraction strategies in priority order (use --list-strategies to see all)",
    )
    parser.add_argument("--list-strategies", action="store_true", help="List available extraction strategies and exit")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API with uvicorn instead of scraping once")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address for --serve")
    parser.add_argument("--port", type=int, default=8000, help="Port for --serve")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser


def serve(scraper: DCRegsScraper, host: str, port: int) -> int:  # pragma: no cover - runtime server
    try:
        import uvicorn
        from .api import create_app
    except ImportError as e:
        logging.getLogger(__name__).error("--serve requires the api extra (%s)", e)
        return 2
    logging.getLogger(__name__).info("Starting API server at http://%s:%d ... (Ctrl+C to stop)", host, port)
    uvicorn.run(create_app(scraper), host=host, port=port, log_level="info")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)
    logger = logging.getLogger(__name__)

    if args.list_strategies:
        print("Available strategies:")
        for name in ExtractorConfig().strategy_order:
            print(f"  - {name}")
        for name in sorted(set(STRATEGY_REGISTRY) - set(ExtractorConfig().strategy_order)):
            print(f"  - {name}")
        return 0
    if args.limit < 0:
        parser.error("--limit must be >= 0")

    config = ExtractorConfig()
    if args.strategies:
        order = tuple(s.strip() for s in args.strategies.split(",") if s.strip())
        unknown = [s for s in order if s not in STRATEGY_REGISTRY]
        if unknown:
            parser.error(f"Unknown strategy(s): {unknown}. Use --list-strategies to view valid names.")
        config = replace(config, strategy_order=order)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        parser.error(str(e))
    if args.url:
        settings = replace(settings, source_url=args.url)
    scraper = DCRegsScraper(settings=settings, config=config)
    if args.serve:
        return serve(scraper, args.host, args.port)

    document = None
    if args.input:
        path = Path(args.input)
        if not path.is_file():
            parser.error(f"Input file '{args.input}' does not exist")
        document = path.read_text(encoding="utf-8", errors="replace")

    exit_code = 0
    try:
        result = scraper.scrape(limit=args.limit, debug=args.debug, document=document)
    except FetchError as e:
        logger.error("Scraping error: %s", e)
        result = error_envelope(e)
        exit_code = 1

    payload = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        print(payload)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
