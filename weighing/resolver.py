"""Batch Resolver.

Turns a batch identifier into the list of item identifiers the batch holds,
via the identifier-source agent.
"""

from typing import List

from connectors.base import RemoteExtractionClient
from core.errors import ExtractionNotFound, NoIdentifiersFound
from core.observability.logging import get_logger

logger = get_logger(__name__)


class BatchResolver:
    """Resolves a batch to its item identifiers.

    Repeats are kept: a batch holding the same item twice lists it twice,
    and the aggregate counts it twice.
    """

    def __init__(self, client: RemoteExtractionClient):
        self.client = client

    async def resolve(self, warehouse_id: str, batch_id: str) -> List[str]:
        """Fetch the identifiers for a batch.

        Raises:
            NoIdentifiersFound: The source holds no identifiers for the batch
            SourceUnreachable, AuthRequired, NavigationPending: From the client
        """
        try:
            identifiers = await self.client.fetch_identifiers(warehouse_id, batch_id)
        except ExtractionNotFound:
            identifiers = []

        if not identifiers:
            raise NoIdentifiersFound(
                f"No item identifiers found for batch {batch_id}",
                {"batch_id": batch_id, "warehouse_id": warehouse_id},
            )

        logger.info(f"Batch {batch_id} resolved to {len(identifiers)} identifiers")
        return list(identifiers)
