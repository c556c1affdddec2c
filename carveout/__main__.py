import argparse
import asyncio
import json
import logging
import sys

from .core.errors import CarveoutError
from .core.pipeline import ModernizationPipeline


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging.

    Logs go to stderr so stdout carries only the JSON result.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("backoff").setLevel(logging.ERROR)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carveout",
        description="Carveout - decompose a Java monolith into a strangler migration plan",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use structural fallbacks instead of the configured oracle"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Structural model, bounded contexts and candidates")
    analyze.add_argument("source", help="Monolith source root")
    analyze.add_argument("--model", action="store_true", help="Include the full structural model")

    plan = sub.add_parser("plan", help="Strangler migration plan")
    plan.add_argument("source", help="Monolith source root")

    refactor = sub.add_parser("refactor", help="Move candidate files into service projects")
    refactor.add_argument("source", help="Monolith source root")
    refactor.add_argument("target", help="Directory receiving one sub-directory per service")
    refactor.add_argument(
        "--candidate",
        action="append",
        dest="candidates",
        help="Only refactor this candidate (repeatable)"
    )
    return parser


async def _run(args: argparse.Namespace) -> dict:
    pipeline = ModernizationPipeline.from_config(offline=args.offline)

    if args.command == "analyze":
        report = await pipeline.analyze(args.source)
        result = report.to_dict()
        if args.model:
            result["structuralModel"] = report.model.to_dict()
        return result

    if args.command == "plan":
        report, plan = await pipeline.plan(args.source)
        return {"analysis": report.to_dict(), "migrationPlan": plan.to_dict()}

    results = await pipeline.refactor(args.source, args.target, args.candidates)
    return {name: r.to_dict() for name, r in results.items()}


def main(argv=None) -> int:
    """Main entry point for Carveout."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    logger.info(f"Starting Carveout {args.command} (offline={args.offline})")

    try:
        result = asyncio.run(_run(args))
    except (CarveoutError, NotADirectoryError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    print(json.dumps(result, indent=2))
    if args.command == "refactor" and any(r["failures"] for r in result.values()):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
