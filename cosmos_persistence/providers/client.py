"""
Cosmos DB client provider.

Owns the single ``azure.cosmos.aio.CosmosClient`` of the process. The client
is created lazily on first use, shared by every container resolution and
closed once at shutdown.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from azure.cosmos import documents
from azure.cosmos.aio import CosmosClient
from azure.identity.aio import DefaultAzureCredential

from ..config import ConnectionMode, RepositoryOptions
from ..constants import USER_AGENT_SUFFIX
from ..exceptions import ConfigurationError, CosmosPersistenceError, require
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

T = TypeVar("T")


class CosmosClientProvider:
    """
    Lazily creates and caches the Cosmos client built from RepositoryOptions.

    Usage:
        provider = CosmosClientProvider(options)
        database = await provider.invoke(
            lambda client: client.create_database_if_not_exists(id="sales")
        )
        await provider.close()
    """

    def __init__(self, options: RepositoryOptions) -> None:
        require(options, "options")
        self._options = options
        self._client: CosmosClient | None = None
        self._credential: DefaultAzureCredential | None = None
        # Guards lazy creation and close across threads
        self._lock = threading.Lock()
        self._closed = False
        self._pending_closes: set[asyncio.Task] = set()

    @property
    def client(self) -> CosmosClient:
        """
        The shared client, created on first access.

        Raises:
            ConfigurationError: If the endpoint is not configured
            CosmosPersistenceError: If the provider has been closed
        """
        if self._client is None:
            with self._lock:
                # Double-check: another thread may have created it while we waited
                if self._client is None:
                    if self._closed:
                        raise CosmosPersistenceError("CosmosClientProvider has been closed.")
                    self._client = self._create_client()
        return self._client

    @property
    def is_client_created(self) -> bool:
        """Whether the client has been constructed."""
        return self._client is not None

    async def invoke(self, client_invoker: Callable[[CosmosClient], Awaitable[T]]) -> T:
        """
        Apply ``client_invoker`` to the shared client and await the result.

        Args:
            client_invoker: Callable receiving the client and returning an awaitable

        Returns:
            Whatever the awaitable produces
        """
        require(client_invoker, "client_invoker")
        return await client_invoker(self.client)

    def _create_client(self) -> CosmosClient:
        start_time = time.time()
        endpoint = self._options.endpoint_uri
        if not endpoint:
            raise ConfigurationError("EndpointUri is not configured.", config_key="EndpointUri")

        if self._options.connection_mode == ConnectionMode.DIRECT:
            logger.warning(
                "Direct connection mode is not available in the Python SDK; using gateway mode."
            )

        credential: Any = self._options.primary_key_value
        if not credential:
            credential = self._credential = DefaultAzureCredential()

        try:
            client = CosmosClient(
                endpoint,
                credential=credential,
                connection_mode=documents.ConnectionMode.Gateway,
                user_agent_suffix=USER_AGENT_SUFFIX,
            )
        except (TypeError, ValueError) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("client.create", duration_ms, success=False)
            contextual_logger.critical(
                "Cosmos client creation failed",
                extra={
                    "error_type": type(e).__name__,
                    "error": str(e),
                    "endpoint_uri": endpoint,
                },
                exc_info=True,
            )
            if self._credential is not None:
                self._release_credential(self._credential)
                self._credential = None
            raise

        duration_ms = (time.time() - start_time) * 1000
        record_operation("client.create", duration_ms, success=True)
        contextual_logger.info(
            "Cosmos client created",
            extra={
                "endpoint_uri": endpoint,
                "authentication": "key" if self._credential is None else "default_credential",
                "duration_ms": round(duration_ms, 2),
            },
        )
        return client

    def _release_credential(self, credential: DefaultAzureCredential) -> None:
        """Close a credential whose client was never built."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(credential.close())
            return
        task = loop.create_task(credential.close())
        self._pending_closes.add(task)
        task.add_done_callback(self._pending_closes.discard)

    async def close(self) -> None:
        """
        Close the client and release its connections.

        This method is idempotent - it's safe to call multiple times.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            client, credential = self._client, self._credential
            self._client = None
            self._credential = None

        if client is not None:
            await client.close()
            contextual_logger.info("Cosmos client closed.")
        if credential is not None:
            await credential.close()
        if self._pending_closes:
            await asyncio.gather(*self._pending_closes)

    async def __aenter__(self) -> "CosmosClientProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
