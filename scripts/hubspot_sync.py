#!/usr/bin/env python3
"""
Run one HubSpot sync pass for a domain record stored as JSON.

Usage:
    python scripts/hubspot_sync.py path/to/domain.json
"""

import asyncio
import json
import sys

from hubsync.config import get_settings
from hubsync.logging_config import configure_logging
from hubsync.sync import JsonFileDomainStore, LoggingActionSink, run_sync


async def main(path: str) -> None:
    settings = get_settings()
    configure_logging(settings)

    report = await run_sync(JsonFileDomainStore(path), LoggingActionSink(), settings)
    print(json.dumps(report.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    if len(sys.argv) != 2:
        raise SystemExit("usage: hubspot_sync.py DOMAIN_JSON")
    asyncio.run(main(sys.argv[1]))
