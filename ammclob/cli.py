"""Command line interface for the AMM/CLOB chart backend."""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

from .config import Settings, get_settings, load_settings
from .io.xrpl_data import XrplDataClient
from .services import NotReadyError, RefreshController, RefreshState, TradingPair
from .utils.logging import configure_logging, get_logger

configure_logging()
LOGGER = get_logger(__name__)


async def collect_chart(
    settings: Settings,
    pair: TradingPair,
    interval: str,
    *,
    source: Optional[str] = None,
    comparison: Optional[str] = None,
    price_lines: bool = False,
    market_data: Any = None,
) -> Dict[str, Any]:
    """Fetch one pair/interval and return the chart payload as a dict."""

    client = market_data or XrplDataClient(settings.data.base_url, timeout=settings.data.timeout_seconds)
    controller = RefreshController.from_settings(settings, client)
    try:
        controller.select(pair, interval)
        state = await controller.wait()
        if state is not RefreshState.READY:
            raise NotReadyError(str(controller.error))
        return controller.view(source, comparison, include_price_lines=price_lines).as_dict()
    finally:
        await controller.close()


def cmd_chart(args: argparse.Namespace, settings: Settings) -> int:
    try:
        pair = TradingPair.parse(args.base, args.counter)
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2
    interval = args.interval or settings.data.default_interval
    try:
        payload = asyncio.run(
            collect_chart(
                settings,
                pair,
                interval,
                source=args.source,
                comparison=args.comparison,
                price_lines=args.price_lines,
            )
        )
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2
    except NotReadyError as exc:
        LOGGER.error("No chart for %s %s: %s", pair.label, interval, exc)
        return 1

    text = json.dumps(payload, indent=2)
    if args.out is not None:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text, encoding="utf-8")
        LOGGER.info(
            "Wrote %s candles for %s %s to %s",
            len(payload["candles"]),
            pair.label,
            interval,
            args.out.as_posix(),
        )
    else:
        print(text)
    return 0


def cmd_pairs(settings: Settings) -> int:
    for item in settings.pairs:
        pair = TradingPair.parse(item.base, item.counter, base_name=item.base_name, counter_name=item.counter_name)
        print(f"{pair.label}\t{pair.base.to_api()}\t{pair.counter.to_api()}")
    return 0


def cmd_serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("ammclob.api.app:app", host=host, port=port)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="AMM/CLOB chart CLI")
    parser.add_argument("--config", type=Path, default=None)
    sub = parser.add_subparsers(dest="command")

    chart = sub.add_parser("chart")
    chart.add_argument("--base", default="XRP")
    chart.add_argument("--counter", required=True)
    chart.add_argument("--interval", default=None)
    chart.add_argument("--source", default=None, choices=["AMM", "CLOB", "BLENDED", "ALL"])
    chart.add_argument("--comparison", default=None, choices=["RAW_PAIR", "DEVIATION"])
    chart.add_argument("--price-lines", dest="price_lines", action="store_true")
    chart.add_argument("--out", type=Path, default=None)

    sub.add_parser("pairs")

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    settings = load_settings(args.config) if args.config is not None else get_settings()

    if args.command == "chart":
        return cmd_chart(args, settings)
    if args.command == "pairs":
        return cmd_pairs(settings)
    if args.command == "serve":
        return cmd_serve(args.host, args.port)
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
