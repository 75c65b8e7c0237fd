#!/usr/bin/env python3
"""CLI for resolving a video id into ranked, preflighted media sources.

Usage:
    # Resolve with settings from the environment / .env
    python -m cli.resolve_sources aqz-KE-bpKQ

    # Skip preflight probes and print JSON
    python -m cli.resolve_sources aqz-KE-bpKQ --no-preflight --json

    # Allow video-only variants and block a format
    python -m cli.resolve_sources aqz-KE-bpKQ --allow-video-only --block 137
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rich.console import Console
from rich.table import Table

from models.media_source import CandidateSource, PreflightOutcome, ResolutionResult
from models.resolution_policy import ResolutionPolicy
from services.media_source_resolver import MediaSourceResolver
from utils.config import load_config, setup_logging, validate_config


console = Console()


def build_policy(args: argparse.Namespace, config: dict) -> ResolutionPolicy:
    """Apply command-line overrides on top of the configured policy."""
    policy = ResolutionPolicy.from_config(config)
    overrides = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.policy:
        overrides["format_policy"] = args.policy
    if args.no_preflight:
        overrides["preflight_enabled"] = False
    if args.preflight_max is not None:
        overrides["preflight_max_candidates"] = args.preflight_max
    if args.probe_bytes is not None:
        overrides["preflight_probe_bytes"] = args.probe_bytes
    if args.allow_video_only:
        overrides["progressive_only"] = False
    if args.block:
        overrides["blocked_format_ids"] = policy.blocked_format_ids | set(args.block)
    if args.policy_first:
        overrides["policy_first"] = True
    if args.no_policy:
        overrides["include_policy_candidate"] = False
    return policy.with_overrides(**overrides) if overrides else policy


def show_result(result: ResolutionResult) -> None:
    """Display resolved sources and preflight diagnostics."""
    if result.is_empty:
        console.print(f"[red]✗ No playable sources for {result.video_id or '(blank id)'}[/red]")
        return

    table = Table(title=f"Media sources for {result.video_id}")
    table.add_column("#", justify="right")
    table.add_column("Source", style="cyan")
    table.add_column("Name")
    table.add_column("Streams", justify="center")
    table.add_column("URL", style="dim", overflow="fold")

    for index, source in enumerate(result.sources):
        table.add_row(
            str(index),
            source.source_id,
            source.name,
            "✓" if source.streams_declared else "-",
            source.url,
        )
    console.print(table)

    if result.preflight:
        probes = Table(title="Preflight")
        probes.add_column("Source", style="cyan")
        probes.add_column("Reachable", justify="center")
        probes.add_column("Status", justify="right")
        probes.add_column("Bytes", justify="right")
        probes.add_column("Error", style="dim")
        for outcome in result.preflight:
            probes.add_row(
                outcome.source_id,
                "[green]✓[/green]" if outcome.reachable else "[red]✗[/red]",
                str(outcome.status_code or "-"),
                str(outcome.bytes_read),
                outcome.error or "",
            )
        console.print(probes)

    if result.fetch_failure is not None:
        console.print(f"[yellow]⚠ Catalog fetch failed: {result.fetch_failure}[/yellow]")
    if result.soft_fallback:
        console.print("[yellow]⚠ No candidate passed preflight; serving unvalidated list[/yellow]")


async def run(video_id: str, policy: ResolutionPolicy, verbose: bool) -> ResolutionResult:
    def on_probe(candidate: CandidateSource, outcome: PreflightOutcome) -> None:
        if verbose:
            console.print(
                f"[dim]probe {candidate.source_id}: status={outcome.status_code} "
                f"range={outcome.content_range} accept={outcome.accept_ranges}[/dim]"
            )

    async with MediaSourceResolver(policy=policy) as resolver:
        return await resolver.resolve(video_id, observer=on_probe)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Resolve a video id into ranked, preflighted media sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m cli.resolve_sources aqz-KE-bpKQ
    python -m cli.resolve_sources vid:aqz-KE-bpKQ --no-preflight --json
        """,
    )

    parser.add_argument("video_id", help="Video id (a 'vid:' prefix is accepted)")
    parser.add_argument("--base-url", help="Bridge base URL (default: BRIDGE_BASE_URL)")
    parser.add_argument("--policy", help="Format policy name (default: FORMAT_POLICY)")
    parser.add_argument("--no-preflight", action="store_true", help="Skip Range probes")
    parser.add_argument("--preflight-max", type=int, help="Max candidates to probe")
    parser.add_argument(
        "--probe-bytes", type=int, help="Bytes to read per probe (0 = 1-byte header probe)"
    )
    parser.add_argument(
        "--allow-video-only", action="store_true", help="Include video-only variants"
    )
    parser.add_argument(
        "--block", action="append", metavar="FORMAT_ID", help="Block a format id (repeatable)"
    )
    parser.add_argument(
        "--policy-first", action="store_true", help="Put the policy source first"
    )
    parser.add_argument(
        "--no-policy", action="store_true", help="Do not add the policy source"
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    config = load_config()
    setup_logging("DEBUG" if args.verbose else config["log_level"])

    errors = validate_config(config)
    if errors and not args.base_url:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        sys.exit(2)

    policy = build_policy(args, config)
    result = asyncio.run(run(args.video_id, policy, args.verbose))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        show_result(result)

    sys.exit(0 if not result.is_empty else 1)


if __name__ == "__main__":
    main()
