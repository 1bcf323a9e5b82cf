#!/usr/bin/env python3
"""Operator script to find and repair help requests whose status disagrees with their tasks.

Usage:
    python scripts/recompute_request_status.py --report
    python scripts/recompute_request_status.py <request_id> [<request_id> ...]
    python scripts/recompute_request_status.py --all
"""

import argparse
import asyncio
import logging
import sys

from neighborly.core import db_client
from neighborly.core.errors import NotFoundError
from neighborly.services import lifecycle_service


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def report() -> int:
    """Print drifted requests without changing anything."""
    drifted = await lifecycle_service.find_status_drift()
    for request, derived in drifted:
        logger.info(f"{request.id}: stored={request.status} derived={derived} ({request.title})")
    logger.info(f"{len(drifted)} drifted request(s)")
    return 0


async def repair(request_ids: list[str]) -> int:
    """Recompute the given requests; returns a non-zero exit code if any were missing."""
    exit_code = 0
    for request_id in request_ids:
        try:
            request = await lifecycle_service.recompute_request_status(request_id=request_id)
            logger.info(f"{request.id}: {request.status}")
        except NotFoundError:
            logger.info(f"{request_id}: not found")
            exit_code = 1
    return exit_code


async def repair_all() -> int:
    drifted = await lifecycle_service.find_status_drift()
    return await repair([request.id for request, _ in drifted])


async def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("request_ids", nargs="*", help="Help request IDs to recompute")
    parser.add_argument("--report", action="store_true", help="Only list drifted requests")
    parser.add_argument("--all", action="store_true", help="Recompute every drifted request")
    args = parser.parse_args(argv)

    await db_client.init_db()
    try:
        if args.report:
            return await report()
        if args.all:
            return await repair_all()
        if not args.request_ids:
            parser.print_usage()
            return 2
        return await repair(args.request_ids)
    finally:
        await db_client.close_connection()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
