"""zai-quota コマンドラインツール"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Mapping, Sequence
from typing import NoReturn

from . import __version__
from .agent import QuotaAgent, collect_alerts
from .auth import discover_api_key
from .client import ZaiQuotaClient
from .config import ENV_VARS, QuotaClientConfig, load_config
from .exceptions import ZaiErrorKind, ZaiQuotaError
from .formatter import format_alerts, format_quota_summary
from .logger import new_logger
from .models import QuotaThresholds


class _ArgumentParser(argparse.ArgumentParser):
    """引数エラーでも終了コード 1 で終了するパーサー。"""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="zai-quota",
        description="Check Z.ai GLM API quota and usage",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    check = subparsers.add_parser("check", help="Check current quota status")
    check.add_argument("-k", "--api-key", help="API key (overrides env variable)")
    check.add_argument("-e", "--endpoint", help="API endpoint URL")
    check.add_argument("-f", "--force", action="store_true", help="Force refresh, bypass cache")
    check.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    check.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode, only show alerts",
    )
    check.add_argument(
        "-t",
        "--threshold",
        type=float,
        default=20.0,
        help="Alert threshold percentage (default: 20)",
    )

    subparsers.add_parser("config", help="Show current configuration")
    subparsers.add_parser("clear-cache", help="Clear quota cache")
    return parser


def _resolve_api_key(
    explicit: str | None,
    environ: Mapping[str, str],
) -> tuple[str | None, str]:
    """API キーとその取得元を返す。優先順位: 引数 > 環境変数 > auth.json"""
    if explicit:
        return explicit, "--api-key option"
    env_key = environ.get(ENV_VARS["api_key"])
    if env_key:
        return env_key, f"{ENV_VARS['api_key']} environment variable"
    found = discover_api_key()
    if found is not None:
        return found[0], f"OpenCode auth.json ({found[1]})"
    return None, ""


def _load(
    environ: Mapping[str, str],
    api_key: str | None = None,
    endpoint: str | None = None,
) -> QuotaClientConfig:
    key, _ = _resolve_api_key(api_key, environ)
    return load_config(api_key=key, endpoint=endpoint, environ=environ)


async def _check(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    config = _load(environ, args.api_key, args.endpoint)
    agent = QuotaAgent(ZaiQuotaClient(config))
    result = await agent.check_quota(force_refresh=args.force)
    thresholds = QuotaThresholds(
        sessions=args.threshold,
        mcp=args.threshold,
        mcp_time_limit=args.threshold,
    )
    alerts = collect_alerts(result, thresholds)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif args.quiet:
        print(format_alerts(alerts))
    else:
        print(format_quota_summary(result))
        if alerts:
            print()
            print(format_alerts(alerts))
    return 0


def _show_config(environ: Mapping[str, str]) -> int:
    key, source = _resolve_api_key(None, environ)
    if key is None:
        print("No API key found in environment or OpenCode auth.json", file=sys.stderr)
        print("  Set ZAI_API_KEY environment variable or use --api-key option", file=sys.stderr)
        return 1
    config = load_config(api_key=key, environ=environ)
    safe = config.to_safe_dict()
    print("Current Configuration:")
    print(f"  API Key: {safe['api_key']}")
    print(f"  Endpoint: {safe['endpoint']}")
    print(f"  Timeout: {safe['timeout_ms']}ms")
    print(f"  Cache Enabled: {safe['cache_enabled']}")
    print(f"  Cache TTL: {safe['cache_ttl']}s")
    print(f"  Source: {source}")
    return 0


def _clear_cache(environ: Mapping[str, str]) -> int:
    agent = QuotaAgent(ZaiQuotaClient(_load(environ)))
    agent.clear_cache()
    print("✅ Cache cleared")
    return 0


def _report_error(error: ZaiQuotaError) -> None:
    match error.kind:
        case ZaiErrorKind.AUTHENTICATION:
            print(f"❌ Authentication Error: {error.message}", file=sys.stderr)
            print("Please check your API key in ZAI_API_KEY environment variable.", file=sys.stderr)
        case ZaiErrorKind.RATE_LIMIT:
            hint = f" (retry after {error.retry_after}s)" if error.retry_after is not None else ""
            print(f"❌ Rate Limit Error: {error.message}{hint}", file=sys.stderr)
        case ZaiErrorKind.CONFIG:
            print(f"❌ Configuration Error: {error.message}", file=sys.stderr)
        case ZaiErrorKind.NETWORK | ZaiErrorKind.VALIDATION | ZaiErrorKind.QUOTA:
            print(f"❌ Error: {error}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    environ = os.environ
    level = "DEBUG" if args.verbose else environ.get("LOG_LEVEL", "WARNING")
    new_logger(level=level, format="text")

    try:
        if args.command == "check":
            return asyncio.run(_check(args, environ))
        if args.command == "config":
            return _show_config(environ)
        return _clear_cache(environ)
    except ZaiQuotaError as e:
        _report_error(e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
