#!/usr/bin/env python3
"""
codexstat

A CLI tool for analyzing Codex CLI session logs.

Usage:
    python -m codexstat.codexstat [options]
    codexstat [options]
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict

from codexstat.config.loader import load_config, get_database_path
from codexstat.models.schema import DATA_TABLES
from codexstat.server.index_service import IndexService


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all CLI flags."""
    parser = argparse.ArgumentParser(
        prog='codexstat',
        description='Usage analytics over Codex session logs'
    )

    # Views (mutually exclusive group)
    views = parser.add_mutually_exclusive_group()
    views.add_argument('--sessions', action='store_true',
                      help='List sessions, newest first')
    views.add_argument('--wordcloud', action='store_true',
                      help='Most frequent words in your messages')
    views.add_argument('--timeline', metavar='ID',
                      help='Show the event timeline of one session')
    views.add_argument('--db-stats', action='store_true',
                      help='Index database statistics')
    views.add_argument('--serve', action='store_true',
                      help='Start the HTTP API server')

    # Session filters
    filters = parser.add_argument_group('session filters')
    filters.add_argument('--query', '-q', metavar='TEXT',
                        help='Substring of session id, cwd or originator')
    filters.add_argument('--with-tools', action='store_true',
                        help='Only sessions with tool calls')
    filters.add_argument('--with-errors', action='store_true',
                        help='Only sessions with errors')
    filters.add_argument('--limit', type=int, metavar='N',
                        help='Max rows to show')
    filters.add_argument('--offset', type=int, metavar='N',
                        help='Rows to skip (--sessions)')
    filters.add_argument('--days', type=int, metavar='N',
                        help='Only sessions started in the last N days (--wordcloud)')
    filters.add_argument('--min-count', type=int, metavar='N',
                        help='Minimum word count (--wordcloud)')

    # Output options
    parser.add_argument('--json', action='store_true',
                       help='Output as JSON')
    parser.add_argument('--no-color', action='store_true',
                       help='Disable colors')

    # Index control
    parser.add_argument('--refresh', action='store_true',
                       help='Refresh the index before reporting')
    parser.add_argument('--rebuild', action='store_true',
                       help='Discard the index and rebuild it from scratch')
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')

    # HTTP server
    parser.add_argument('--port', type=int, default=8080,
                       help='Port for the API server (default: 8080)')
    parser.add_argument('--host', default='127.0.0.1',
                       help='Host for the API server (default: 127.0.0.1)')

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _table_counts(service: IndexService) -> Dict[str, int]:
    """Row counts of the index tables."""
    counts = {}
    for table in reversed(DATA_TABLES):
        cursor = await service.reader.execute(f"SELECT COUNT(*) FROM {table}")
        counts[table] = (await cursor.fetchone())[0]
    return counts


async def run_command(args: argparse.Namespace, config: Dict[str, Any]) -> str:
    """Run one non-server command and return its rendered output."""
    color_enabled = not args.no_color and config.get('display', {}).get('color_enabled', True)

    async with IndexService.from_config(config) as service:
        if args.refresh or args.rebuild:
            stats = await service.refresh(rebuild=args.rebuild)
            if not args.json:
                print(
                    f"Refresh: {stats['files_processed']} processed, "
                    f"{stats['files_skipped']} unchanged, "
                    f"{stats['files_removed']} removed, "
                    f"{stats['files_failed']} failed"
                    + (" (full rebuild)" if stats['full_rebuild'] else "")
                )

        if args.db_stats:
            from codexstat.output.formatter import bold, format_number
            counts = await _table_counts(service)
            if args.json:
                return json.dumps(counts, indent=2)
            lines = [bold("DATABASE STATISTICS", color_enabled), "-" * 40]
            lines.append(f"{'path':20} {get_database_path(config)}")
            for table, count in counts.items():
                lines.append(f"{table:20} {format_number(count):>10} rows")
            return '\n'.join(lines)

        if args.sessions:
            result = await service.list_sessions(
                args.query, args.with_tools, args.with_errors, args.limit, args.offset
            )
            if args.json:
                return json.dumps(result, indent=2, ensure_ascii=False)
            from codexstat.reports.sessions import generate_sessions_list
            return generate_sessions_list(result, color_enabled)

        if args.wordcloud:
            cloud = await service.get_user_word_cloud(
                args.days, args.limit, args.min_count,
                args.query, args.with_tools, args.with_errors,
            )
            if args.json:
                return json.dumps(cloud, indent=2, ensure_ascii=False)
            from codexstat.reports.wordcloud import generate_wordcloud
            return generate_wordcloud(cloud, color_enabled)

        if args.timeline:
            timeline = await service.get_session_timeline(args.timeline)
            if args.json:
                return json.dumps(timeline, indent=2, ensure_ascii=False)
            from codexstat.reports.sessions import generate_timeline
            return generate_timeline(timeline, color_enabled)

        snapshot = await service.get_index_snapshot()
        if args.json:
            return json.dumps(snapshot, indent=2, ensure_ascii=False)
        from codexstat.reports.summary import generate_summary
        return generate_summary(snapshot, color_enabled)


def main(argv=None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    config = load_config()

    if args.serve:
        _run_serve(config, args)
        return

    try:
        print(asyncio.run(run_command(args, config)))
    except OSError as e:
        print(f"Error: {e}")
        sys.exit(1)


def _run_serve(config, args):
    """Start the HTTP API server."""
    import uvicorn

    from codexstat.server.app import create_app
    app = create_app(config=config)

    url = f"http://{args.host}:{args.port}"
    print(f"\nServing codexstat API at {url}/api")
    print("Press Ctrl+C to stop\n")

    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.verbose else "info")


if __name__ == '__main__':
    main()
