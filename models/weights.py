"""
Batch weight data models.

Shared data contracts between the weighing pipeline, the HTTP surface and
the Temporal activity. BatchResult serializes with the field names the
picking panel already reads (averageWeight, uniqueSKUs, ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class AgentRole(str, Enum):
    """Remote collection agents the pipeline depends on."""
    IDENTIFIER_SOURCE = "IDENTIFIER_SOURCE"
    WEIGHT_SOURCE = "WEIGHT_SOURCE"


class ConnectionState(str, Enum):
    """Connection state of one agent role."""
    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"


class ExtractionKind(str, Enum):
    """What an extraction request asks an agent for."""
    IDENTIFIERS = "IDENTIFIERS"
    WEIGHT = "WEIGHT"


# =============================================================================
# RESULTS
# =============================================================================

class BatchResult(BaseModel):
    """Summary statistics for one batch.

    total_items counts the original identifier list including repeats;
    unique_item_count counts distinct identifiers. All weights are pounds
    rounded half-up to two decimals.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    batch_id: str = Field(..., alias="batchId")
    warehouse_id: Optional[str] = Field(default=None, alias="warehouseId")
    total_items: int = Field(..., alias="totalItems", description="Identifiers in the batch, repeats included")
    items_with_weight: int = Field(..., alias="itemsWithWeight")
    average_weight: float = Field(..., alias="averageWeight")
    total_weight: float = Field(..., alias="totalWeight")
    min_weight: float = Field(..., alias="minWeight")
    max_weight: float = Field(..., alias="maxWeight")
    unique_item_count: int = Field(..., alias="uniqueSKUs", description="Distinct identifiers")

    def to_wire(self) -> Dict:
        """Serialize with the panel's field names."""
        return self.model_dump(by_alias=True)


class ItemDetails(BaseModel):
    """Labelled fields read from a weight-source detail page."""
    model_config = ConfigDict(frozen=True)

    asin: Optional[str] = None
    item_id: Optional[str] = Field(default=None, description="FN SKU as shown on the page")
    title: Optional[str] = None
    weight: Optional[float] = Field(default=None, description="Pounds")
    dimensions: Optional[str] = None
    binding: Optional[str] = None
    list_price: Optional[float] = None


class AgentConnection(BaseModel):
    """Connection record for one agent role."""
    model_config = ConfigDict(frozen=True)

    role: AgentRole
    state: ConnectionState = ConnectionState.DISCONNECTED
    agent_id: Optional[str] = None
    last_known_location: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED


class ConnectionStatus(BaseModel):
    """Snapshot returned by get_connection_status()."""
    all_connected: bool
    missing_roles: List[AgentRole] = Field(default_factory=list)
    connections: Dict[str, bool] = Field(default_factory=dict, description="Role -> connected")
    cache_size: Optional[int] = None
