"""
FalkorDB Client
===============

Async client for the FalkorDB graph holding the code graph
(Class, Method, Endpoint and Description nodes).

FalkorDB speaks the Redis protocol and accepts Cypher, so the ingestion
stages and the entity registry share one thin query API.
"""

import structlog
import asyncio
from typing import Dict, List, Any, Optional

from falkordb import FalkorDB, Graph

from astkg.storage.graph.config import FalkorDBConfig

log = structlog.get_logger()


class FalkorDBClient:
    """
    Async client for FalkorDB graph database.

    Example:
        client = FalkorDBClient(config)
        await client.connect()

        results = await client.query('''
            MATCH (c:Class {name: $name})-[:CONTAINS]->(m:Method)
            RETURN m.name AS name, m.signature AS signature
        ''', {"name": "OrderService"})

        await client.close()
    """

    def __init__(self, config: Optional[FalkorDBConfig] = None):
        self.config = config or FalkorDBConfig()
        self._db: Optional[FalkorDB] = None
        self._graph: Optional[Graph] = None
        self._connected = False

        log.info(
            f"FalkorDBClient initialized - "
            f"host={self.config.host}:{self.config.port}, "
            f"graph={self.config.graph_name}"
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self):
        """Establish connection to FalkorDB."""
        if self._connected:
            log.debug("Already connected to FalkorDB")
            return

        # falkordb-py is synchronous
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._connect_sync)

        log.info(f"Connected to FalkorDB at {self.config.host}:{self.config.port}")

    def _connect_sync(self):
        """Synchronous connection (called in executor)."""
        self._db = FalkorDB(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
        )
        self._graph = self._db.select_graph(self.config.graph_name)
        self._connected = True

    async def close(self):
        """Close connection."""
        if not self._connected:
            return

        # Connections belong to the redis pool; just drop our handles
        self._connected = False
        self._db = None
        self._graph = None
        log.info("Disconnected from FalkorDB")

    async def query(
        self,
        cypher: str,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute Cypher query.

        Args:
            cypher: Cypher query string
            params: Query parameters

        Returns:
            List of result records as dicts keyed by column alias
        """
        if not self._connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            self._query_sync,
            cypher,
            params or {}
        )

    def _query_sync(self, cypher: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Execute query synchronously (called in executor)."""
        try:
            result = self._graph.query(cypher, params)

            records = []
            if result.result_set:
                headers = result.header

                for row in result.result_set:
                    record = {}
                    for i, header in enumerate(headers):
                        # Header format is [type, alias]
                        col_name = header[1] if len(header) > 1 else f"col_{i}"
                        value = row[i]

                        if hasattr(value, 'properties'):
                            record[col_name] = {
                                "properties": value.properties,
                                "labels": getattr(value, 'labels', []),
                                "id": getattr(value, 'id', None),
                            }
                        else:
                            record[col_name] = value

                    records.append(record)

            log.debug(
                f"Query executed: {cypher[:100]}... "
                f"(params={list(params.keys())}) -> {len(records)} records"
            )
            return records

        except Exception as e:
            log.error(f"Query failed: {cypher[:100]}... Error: {e}")
            raise

    async def query_batched(
        self,
        cypher: str,
        rows: List[Dict[str, Any]],
        batch_size: int = 500,
        param_name: str = "rows",
    ) -> int:
        """
        Run an ``UNWIND $rows`` style query over ``rows`` in chunks.

        Args:
            cypher: Query that reads the batch from ``$<param_name>``
            rows: Row dicts to send
            batch_size: Rows per round trip
            param_name: Name of the list parameter in the query

        Returns:
            Number of rows sent
        """
        sent = 0
        for i in range(0, len(rows), batch_size):
            batch = rows[i:i + batch_size]
            await self.query(cypher, {param_name: batch})
            sent += len(batch)
        return sent

    async def health_check(self) -> bool:
        """
        Check if FalkorDB is healthy and reachable.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if not self._connected:
                await self.connect()

            await self.query("RETURN 1")
            return True

        except Exception as e:
            log.error(f"Health check failed: {e}")
            return False
