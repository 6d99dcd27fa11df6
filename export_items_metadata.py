# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "httpx~=0.28.0",
#   "humanize",
#   "python-dotenv",
#   "pyjwt"
# ]
# ///

"""
Exports the metadata of every item a publisher owns to a single JSON array file.

It's memory-friendly: the item list is fetched once, then metadata is fetched one item at a time
  and each record is written to the output file as soon as it arrives.
Items deleted between the listing and the metadata fetch (404) are skipped with a warning.

Usage:
  uv run ./export_items_metadata.py
  uv run ./export_items_metadata.py --output-path "../output_dir/items-metadata.json"

Args:
  --output-path (optional) -- defaults to output/items-metadata.json
  --publisher-id (optional) -- defaults to GLOO_PUBLISHER_ID
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, NamedTuple

import httpx
import humanize

from gloo_auth import (
    bearer_headers,
    build_client,
    check_response,
    configure_logging,
    get_access_token,
    load_credentials,
    load_env,
    load_publisher_id,
    require_access_token,
)
from list_items import get_items

log = logging.getLogger(__name__)

## constants --------------------------------------------------------
ITEM_METADATA_BASE_URL: str = 'https://platform.ai.gloo.com/engine/v2/items'
DEFAULT_OUTPUT_PATH: str = 'output/items-metadata.json'
DEFAULT_HIGH_WATER_MARK: int = 16 * 1024  # bytes buffered before write() asks the caller to wait
ARRAY_OPEN: str = '[\n'
ARRAY_CLOSE: str = '\n]\n'


class SequencedRecord(NamedTuple):
    """
    One metadata record plus its position in the original item listing.
    `total` is the listing length, so it stays fixed even when items are skipped.
    """

    metadata: dict[str, Any]
    index: int
    total: int


async def get_item_metadata(client: httpx.AsyncClient, access_token: str, item_id: str) -> dict[str, Any] | None:
    """
    Fetches the detail record for one item; returns None if the item no longer exists (404).
    Called by: fetch_all_metadata()
    """
    url: str = f'{ITEM_METADATA_BASE_URL}/{item_id}'
    log.debug(f'GET ``{url}``')
    response: httpx.Response = await client.get(url, headers=bearer_headers(access_token))
    if response.status_code == 404:
        return None
    check_response(response)
    return response.json()


async def fetch_all_metadata(
    client: httpx.AsyncClient, access_token: str, publisher_id: str
) -> AsyncIterator[SequencedRecord]:
    """
    Yields a SequencedRecord per item, in listing order.

    Nothing happens until the first record is requested; the listing call is made then.
    Metadata requests are strictly one at a time. A 404 is logged and skipped (its index is
    simply missing from the output); any other failure propagates.
    Called by: run(), consumed by stream_metadata_to_file()
    """
    items: list[dict[str, Any]] = await get_items(client, access_token, publisher_id)
    total: int = len(items)
    for index, item in enumerate(items):
        item_id: str = item['item_id']
        metadata: dict[str, Any] | None = await get_item_metadata(client, access_token, item_id)
        if metadata is None:
            log.warning(f'Item {item_id} not found (may have been deleted), skipping...')
            continue
        yield SequencedRecord(metadata, index, total)


class FileSink:
    """
    Buffered UTF-8 file sink with write-readiness signalling.
    - `write()` only buffers; it returns False once the buffer reaches `high_water_mark` bytes.
    - `drain()` writes the buffer out on a worker thread; callers await it before writing more.
    - Writes go to `<path>.tmp`; `close()` flushes, fsyncs, and renames it onto `path`.
    - `abort()` closes and removes the temp file, leaving `path` as it was.
    """

    def __init__(self, path: Path, high_water_mark: int = DEFAULT_HIGH_WATER_MARK) -> None:
        self.path: Path = path
        self.tmp_path: Path = path.with_name(f'{path.name}.tmp')
        self.high_water_mark: int = high_water_mark
        self.buffer: bytearray = bytearray()
        self.fh = None

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.fh = self.tmp_path.open('wb')

    def write(self, chunk: str) -> bool:
        assert self.fh is not None
        self.buffer.extend(chunk.encode('utf-8'))
        return len(self.buffer) < self.high_water_mark

    async def drain(self) -> None:
        assert self.fh is not None
        if not self.buffer:
            return
        pending: bytes = bytes(self.buffer)
        self.buffer.clear()
        await self._run_to_completion(self.fh.write, pending)

    async def close(self) -> None:
        await self.drain()
        await self._run_to_completion(self._finalize)

    async def _run_to_completion(self, func, *args: Any) -> None:
        """
        Runs blocking file work on a worker thread. If the caller is cancelled meanwhile,
        waits for the thread to finish before re-raising, so `abort()` never closes a file mid-write.
        """
        work = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            await asyncio.shield(work)
        except asyncio.CancelledError:
            await work
            raise

    def _finalize(self) -> None:
        assert self.fh is not None
        self.fh.flush()
        os.fsync(self.fh.fileno())
        self.fh.close()
        os.replace(self.tmp_path, self.path)
        if os.name == 'posix':  # persist the rename itself
            dir_fd: int = os.open(self.path.parent, os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)

    def abort(self) -> None:
        self.buffer.clear()
        if self.fh is not None:
            self.fh.close()
        self.tmp_path.unlink(missing_ok=True)


def open_sink(destination: str | os.PathLike | Any) -> Any:
    """
    Returns an open sink: paths become a FileSink; anything else is assumed to already be a sink.
    """
    if isinstance(destination, (str, os.PathLike)):
        sink = FileSink(Path(destination))
        sink.open()
        return sink
    return destination


async def write_to_sink(sink: Any, data: str) -> None:
    """
    Writes one chunk; when the sink says it is full, waits for it to drain before returning.
    """
    if not sink.write(data):
        await sink.drain()


def format_element(metadata: dict[str, Any], is_first: bool) -> str:
    """
    Pretty-prints one record, nested one level inside the array, with its separator prefix.
    """
    prefix: str = '  ' if is_first else ',\n  '
    jsn: str = json.dumps(metadata, indent=2, ensure_ascii=False).replace('\n', '\n  ')
    return prefix + jsn


async def stream_metadata_to_file(records: AsyncIterator[SequencedRecord], destination: str | os.PathLike | Any) -> int:
    """
    Writes the records as one JSON array and returns how many elements were written.

    Flow:
    - Opens the sink and writes the opening bracket.
    - For each record: prints a progress line, writes the element, and if the sink is full
      waits for it to drain before asking `records` for the next one.
    - Writes the closing bracket, closes the sink, returns the count.

    Errors from `records` or the sink propagate as-is; the sink is aborted first, so a
    file destination never ends up holding a truncated array.
    Called by: run()
    """
    sink: Any = open_sink(destination)
    count: int = 0
    try:
        await write_to_sink(sink, ARRAY_OPEN)
        async for metadata, index, total in records:
            title: str = metadata.get('item_title') or metadata.get('item_id') or ''
            print(f'[{index + 1}/{total}] {title}')
            await write_to_sink(sink, format_element(metadata, is_first=count == 0))
            count += 1
        await write_to_sink(sink, ARRAY_CLOSE)
        await sink.close()
    except BaseException:
        abort = getattr(sink, 'abort', None)  # plain write/drain/close sinks have nothing to roll back
        if abort is not None:
            abort()
        raise
    return count


class CLI:
    """
    Manages command-line parsing for the script entrypoint.
    - Accepts an optional output path for the JSON array file.
    - Accepts an optional publisher id, overriding GLOO_PUBLISHER_ID.
    """

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='Export metadata for every item of a publisher to a JSON file.')
        parser.add_argument(
            '--output-path',
            default=DEFAULT_OUTPUT_PATH,
            help=f'Where to write the JSON array (default: {DEFAULT_OUTPUT_PATH})',
        )
        parser.add_argument('--publisher-id', default=None, help='Publisher id; defaults to GLOO_PUBLISHER_ID')
        return parser

    @staticmethod
    def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
        return CLI.build_parser().parse_args(argv)


async def run(credentials: dict[str, str], publisher_id: str, output_path: Path) -> int:
    """
    Gets a token, then streams every item's metadata into `output_path`.
    Called by: main()
    """
    async with build_client() as client:
        token_response: dict[str, Any] = await get_access_token(client, credentials)
        access_token: str = require_access_token(token_response)
        print(f'Fetching items for publisher "{publisher_id}"...')
        print('Fetching metadata...')
        records: AsyncIterator[SequencedRecord] = fetch_all_metadata(client, access_token, publisher_id)
        count: int = await stream_metadata_to_file(records, output_path)
    size: str = humanize.naturalsize(output_path.stat().st_size)
    print(f'\nSaved {count} metadata records ({size}) to {output_path}')
    return count


def main(argv: list[str] | None = None) -> int:
    """
    Loads config, then runs the export.
    Called by: dundermain
    """
    configure_logging()
    load_env()
    args: argparse.Namespace = CLI.parse_args(argv)
    credentials: dict[str, str] = load_credentials()
    publisher_id: str = args.publisher_id or load_publisher_id()
    output_path: Path = Path(args.output_path).expanduser().resolve()
    asyncio.run(run(credentials, publisher_id, output_path))
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except Exception as exc:
        raise SystemExit(f'Error fetching items metadata: {exc}')
