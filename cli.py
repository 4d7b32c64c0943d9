#!/usr/bin/env python3
"""
Command-line interface for the cart promotion handler.

Usage:
    uv run python cli.py [command] [options]

Commands:
    demo        Run demo scenarios
    activate    Run the handler for one order from the fixtures
    test        Run the test suite
    serve       Start the API server

Examples:
    uv run python cli.py demo add-to-cart
    uv run python cli.py activate ord-003
    uv run python cli.py activate ord-001 --line-item li-001
    uv run python cli.py serve
"""

import argparse
import json
import logging
import subprocess
import sys


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )


def run_demo(scenario: str) -> None:
    """Run a demo scenario."""
    from promotion_handler.demo import (
        run_add_to_cart_demo,
        run_item_total_demo,
        run_outlet_demo,
    )

    if scenario == "add-to-cart":
        run_add_to_cart_demo()
    elif scenario == "item-total":
        run_item_total_demo()
    elif scenario == "outlet":
        run_outlet_demo()
    elif scenario == "all":
        run_add_to_cart_demo()
        run_item_total_demo()
        run_outlet_demo()
    else:
        print(f"Unknown scenario: {scenario}")
        sys.exit(1)


def run_activate(order_id: str, line_item_id: str | None) -> None:
    """Activate promotions for an order and print the outcomes as JSON."""
    from promotion_handler import CartPromotionHandler
    from shared.data_store import get_promotion_store
    from shared.errors import PromotionHandlerError

    store = get_promotion_store()
    try:
        handler = CartPromotionHandler.from_settings(store=store)
        order = store.get_order(order_id)
        if not order:
            print(f"Order not found: {order_id}")
            sys.exit(1)

        line_item = None
        if line_item_id:
            line_item = order.get_line_item(line_item_id)
            if not line_item:
                print(f"Line item {line_item_id} not in order {order_id}")
                sys.exit(1)

        outcomes = handler.activate(order, line_item)
    except PromotionHandlerError as e:
        print(f"Activation failed: {e}")
        sys.exit(2)

    print(json.dumps({
        "order_id": order_id,
        "outcomes": [o.model_dump(mode="json") for o in outcomes],
        "adjustments": [a.model_dump(mode="json") for a in store.get_adjustments(order_id)],
    }, indent=2))


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Cart Promotion Handler CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo add-to-cart
  %(prog)s demo all
  %(prog)s activate ord-003
  %(prog)s activate ord-001 --line-item li-001
  %(prog)s test -v
  %(prog)s serve --reload
        """,
    )
    parser.add_argument("--log-level", default=None, help="Override PROMO_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run demo scenarios")
    demo_parser.add_argument(
        "scenario",
        choices=["add-to-cart", "item-total", "outlet", "all"],
        help="Which scenario to run",
    )

    # Activate command
    activate_parser = subparsers.add_parser("activate", help="Activate promotions for an order")
    activate_parser.add_argument("order_id", help="Order to activate promotions for")
    activate_parser.add_argument("--line-item", dest="line_item_id", default=None,
                                 help="Line item that was just added")

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command in ("demo", "activate"):
        from shared.config import get_settings
        configure_logging(args.log_level or get_settings().LOG_LEVEL)

    if args.command == "demo":
        run_demo(args.scenario)
    elif args.command == "activate":
        run_activate(args.order_id, args.line_item_id)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
