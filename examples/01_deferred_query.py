"""
Example 01: Deferred Query Responses

This example submits queries with DeferredQuery's Client, streams the
payload of one response and reads the execution metrics of another.
"""

import tempfile
from pathlib import Path

from deferred_query import (
    Client,
    ConnectionConfig,
    MetricNotFoundError,
    QuerySettings,
    ResultFormat,
    quote_identifier,
)


def main():
    db_dir = Path(tempfile.mkdtemp())
    config = ConnectionConfig(driver="sqlite", database=str(db_dir / "example.db"), pool_size=2)

    with Client(config) as client:
        table = quote_identifier("users")
        with client.query(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name TEXT)") as response:
            response.ensure_done()

        with client.query(f"INSERT INTO {table} (name) VALUES ('Alice'), ('Bob')") as response:
            print(f"Rows written: {response.written_rows}")

        print("=== Streaming a response ===\n")
        settings = QuerySettings(format=ResultFormat.TAB_SEPARATED_WITH_NAMES)
        with client.query(f"SELECT id, name FROM {table}", settings=settings) as response:
            # The query runs in the background until the stream is requested
            print(response.get_input_stream().read().decode("utf-8"))
            print(f"Result rows: {response.result_rows}")
            print(f"Server time: {response.server_time} ns")
            try:
                print(f"Bytes read: {response.read_bytes}")
            except MetricNotFoundError as e:
                print(f"Not reported: {e}")

    for file in db_dir.iterdir():
        file.unlink()
    db_dir.rmdir()


if __name__ == "__main__":
    main()
