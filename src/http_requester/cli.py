"""Command line entry point.

Examples
--------
.. code-block:: bash

    http-requester get https://httpbin.org/get -p page=2
    http-requester post-json https://httpbin.org/post --body '{"a": 1}'
    http-requester delete https://httpbin.org/delete --body null
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config.settings import RequesterSettings
from .exceptions import RequesterError
from .requester import Requester
from .utils.log_sanitizer import setup_logging
from .validation import UNSET

logger = logging.getLogger(__name__)

METHODS = ("get", "post-form", "post-json", "delete")


def _parse_params(pairs: List[str]) -> Optional[Dict[str, str]]:
    if not pairs:
        return None
    params: Dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got {pair!r}")
        params[name] = value
    return params


def _parse_body(raw: Optional[str]) -> Any:
    if raw is None:
        return UNSET
    try:
        return json.loads(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"--body must be JSON: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="http-requester", description="Send one HTTP request"
    )
    parser.add_argument("method", choices=METHODS)
    parser.add_argument("url")
    parser.add_argument(
        "-p", "--param", action="append", default=[], metavar="NAME=VALUE"
    )
    parser.add_argument("--body", help="JSON body for post-json and delete")
    parser.add_argument("--timeout", type=int, help="Timeout in milliseconds")
    return parser


async def run(args: argparse.Namespace, requester: Requester) -> Dict[str, Any]:
    async with requester:
        params = _parse_params(args.param)
        if args.method == "get":
            result = await requester.get(args.url, params, args.timeout)
        elif args.method == "post-form":
            result = await requester.post_form(args.url, params, args.timeout)
        elif args.method == "post-json":
            result = await requester.post_json(
                args.url, _parse_body(args.body), args.timeout
            )
        else:
            result = await requester.delete(
                args.url, params, _parse_body(args.body), args.timeout
            )
    output: Dict[str, Any] = {
        "status": result.status_code,
        "remote_address": result.meta.remote_address,
        "body": result.response_body,
    }
    if result.timings is not None:
        output["timings"] = result.timings.model_dump()
    return output


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = RequesterSettings.load()
        setup_logging(level=settings.log_level)
        requester = Requester.from_settings(settings)
        output = asyncio.run(run(args, requester))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except RequesterError as e:
        logger.debug("Request failed", exc_info=True)
        print(e.to_json(), file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
