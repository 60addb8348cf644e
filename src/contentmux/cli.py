"""
ContentMux CLI

Commands:
  serve  - Run the API server
  tiers  - Show the pricing table
  check  - Check whether a tier has room for another job
"""

import argparse
import os
import sys

from .core.tiers import UNLIMITED, is_known_tier, list_tiers, lookup
from .core.usage import usage_snapshot


def _limit_label(limit: int) -> str:
    return "Unlimited" if limit == UNLIMITED else str(limit)


def cmd_serve(args):
    """Run the API server."""
    import uvicorn

    port = args.port or int(os.environ.get("PORT", 8000))
    host = args.host or "0.0.0.0"

    print(f"Starting ContentMux on {host}:{port}")

    uvicorn.run(
        "contentmux.api.server:app",
        host=host,
        port=port,
        reload=args.reload,
        workers=args.workers,
    )


def cmd_tiers(args):
    """Show the pricing table."""
    print("ContentMux Plans")
    print("=" * 40)
    for tier in list_tiers():
        platforms = ", ".join(p.value for p in tier.platform_access)
        print(f"{tier.name} ({tier.tier_id.value})")
        print(f"  Price: ${tier.price}/month")
        print(f"  Jobs/month: {_limit_label(tier.job_limit)}")
        print(f"  Platforms: {platforms}")


def cmd_check(args):
    """Check whether a tier has room for another job."""
    if args.used < 0:
        print("Error: used must be zero or more")
        sys.exit(1)
    if not is_known_tier(args.tier):
        print(f"Warning: unknown tier '{args.tier}', using {lookup(None).tier_id.value}")

    snapshot = usage_snapshot(args.tier, args.used)
    tier = lookup(args.tier)

    print(f"Tier: {tier.name}")
    print(f"  Jobs used: {snapshot.jobs_used}")
    print(f"  Jobs limit: {_limit_label(snapshot.jobs_limit)}")
    print(f"  Jobs remaining: {_limit_label(snapshot.jobs_remaining)}")
    if snapshot.can_create_more:
        print("Allowed")
    else:
        print("Limit reached")
        sys.exit(2)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="ContentMux - Subscription tiers and usage limits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")
    serve_parser.add_argument("--workers", type=int, default=1)

    # tiers
    subparsers.add_parser("tiers", help="Show the pricing table")

    # check
    check_parser = subparsers.add_parser("check", help="Check capacity for a tier")
    check_parser.add_argument("tier", help="Tier id (trial, basic, pro, business, enterprise)")
    check_parser.add_argument("used", type=int, help="Jobs used this month")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "tiers":
        cmd_tiers(args)
    elif args.command == "check":
        cmd_check(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
