"""Export one caller's extracted slips from the SQLite store to a CSV file.

This script reuses the same `DATABASE_DIR` behavior as the application via
`utils.database_init.AsyncDatabaseInitializer` and writes the same document
as the `/api/slips/export` endpoint.

Run: set the `DATABASE_DIR` environment variable and run
      `python export_slips.py --user-id <id> [--output slip_data.csv]`.
"""
import argparse
import asyncio
import logging
from typing import List, Optional

import aiofiles
from dotenv import load_dotenv

from dal.slip_dal import SlipDAL, namespace_for
from services import aggregation
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger("export_slips")


async def export(user_id: str, output: str, config: AppConfig) -> int:
    """Write the caller's extraction results to `output` and return the row count.

    Args:
        user_id: Caller whose namespace is exported.
        output: Destination CSV path.
        config: Settings providing the database dir, app id and viewer base URL.
    """
    initializer = AsyncDatabaseInitializer(config.database_dir)
    dal = SlipDAL(initializer, namespace_for(config.app_id, user_id))
    records = await dal.list_all()
    results = [record.extraction for record in records if record.extraction is not None]

    template = aggregation.build_viewer_url_template(config.viewer_base_url, config.app_id, user_id)
    document = aggregation.to_export_document(results, template)
    async with aiofiles.open(output, "wb") as f:
        await f.write(aggregation.encode_export_document(document))
    return len(results)


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user-id", required=True, help="Caller identity whose slips are exported.")
    parser.add_argument("--output", default=aggregation.EXPORT_FILENAME, help="Destination CSV file.")
    args = parser.parse_args(argv)

    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(message)s")
    count = asyncio.run(export(args.user_id, args.output, config))
    LOGGER.info("Wrote %d slips to %s", count, args.output)


if __name__ == "__main__":
    main()
