"""
Connection Registry Tests

Role state transitions and change notifications.
"""

import asyncio

from connectors.registry import (
    ConnectionRegistry,
    ExtractionDelivery,
    RegistryEventType,
)
from models.weights import AgentRole, ConnectionState, ExtractionKind

RODEO = "https://rodeo-iad.amazon.com/IND8/Search?searchKey=1234567890"
FCRESEARCH = "https://fcresearch-na.aka.amazon.com/IND8/results?s=X001ABCDEF2"


class TestConnectionRegistry:

    def test_starts_disconnected(self):
        registry = ConnectionRegistry()

        assert registry.all_connected() is False
        assert registry.missing_roles() == {AgentRole.IDENTIFIER_SOURCE, AgentRole.WEIGHT_SOURCE}

    def test_announce_ready_connects_matching_role(self):
        registry = ConnectionRegistry()

        connection = registry.announce_ready("tab-1", RODEO)

        assert connection.role == AgentRole.IDENTIFIER_SOURCE
        assert connection.state == ConnectionState.CONNECTED
        assert connection.last_known_location == RODEO
        assert registry.missing_roles() == {AgentRole.WEIGHT_SOURCE}

    def test_unmatched_location_is_ignored(self):
        registry = ConnectionRegistry()

        assert registry.announce_ready("tab-9", "https://example.com/") is None
        assert registry.all_connected() is False

    def test_all_connected(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-1", RODEO)
        registry.announce_ready("tab-2", FCRESEARCH)

        status = registry.status()
        assert status.all_connected is True
        assert status.missing_roles == []
        assert status.connections == {"IDENTIFIER_SOURCE": True, "WEIGHT_SOURCE": True}

    def test_navigating_away_disconnects(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-2", FCRESEARCH)

        registry.agent_navigated("tab-2", "https://example.com/elsewhere")

        connection = registry.connection(AgentRole.WEIGHT_SOURCE)
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.last_known_location == FCRESEARCH

    def test_navigating_within_role_updates_location(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-2", FCRESEARCH)
        events = []
        registry.subscribe(events.append)
        moved = "https://fcresearch-na.aka.amazon.com/IND8/results?s=B00TESTID99"

        registry.agent_navigated("tab-2", moved)

        connection = registry.connection(AgentRole.WEIGHT_SOURCE)
        assert connection.is_connected
        assert connection.last_known_location == moved
        assert events == []

    def test_removed_agent_disconnects(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-1", RODEO)

        registry.agent_removed("tab-1")

        assert AgentRole.IDENTIFIER_SOURCE in registry.missing_roles()

    def test_removing_replaced_agent_keeps_new_one(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-1", RODEO)
        registry.announce_ready("tab-3", RODEO)

        registry.agent_removed("tab-1")

        assert registry.connection(AgentRole.IDENTIFIER_SOURCE).agent_id == "tab-3"

    def test_agent_switching_roles(self):
        registry = ConnectionRegistry()
        registry.announce_ready("tab-1", RODEO)

        registry.announce_ready("tab-1", FCRESEARCH)

        assert registry.connection(AgentRole.WEIGHT_SOURCE).agent_id == "tab-1"
        assert not registry.connection(AgentRole.IDENTIFIER_SOURCE).is_connected

    def test_subscribers_see_changes(self):
        registry = ConnectionRegistry()
        events = []
        registry.subscribe(events.append)

        registry.announce_ready("tab-1", RODEO)
        registry.announce_ready("tab-1", RODEO)  # unchanged, no event
        registry.agent_removed("tab-1")

        assert [e.type for e in events] == [RegistryEventType.CONNECTION_CHANGED] * 2
        assert events[0].connection.is_connected
        assert not events[1].connection.is_connected

    def test_failing_subscriber_does_not_block_others(self):
        registry = ConnectionRegistry()
        events = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        registry.subscribe(broken)
        registry.subscribe(events.append)

        registry.announce_ready("tab-1", RODEO)

        assert len(events) == 1

    def test_unsubscribe(self):
        registry = ConnectionRegistry()
        events = []
        unsubscribe = registry.subscribe(events.append)
        unsubscribe()

        registry.announce_ready("tab-1", RODEO)

        assert events == []

    def test_deliver_publishes_result(self):
        registry = ConnectionRegistry()
        events = []
        registry.subscribe(events.append)
        delivery = ExtractionDelivery(
            request_id="req-1", agent_id="tab-2", kind=ExtractionKind.WEIGHT,
            warehouse_id="IND8", key="X001ABCDEF2", value=0.79,
        )

        registry.deliver(delivery)

        assert events[0].type == RegistryEventType.EXTRACTION_DELIVERED
        assert events[0].to_dict()["delivery"]["value"] == 0.79
        assert delivery.succeeded

    def test_stream_yields_events(self):
        registry = ConnectionRegistry()

        async def first_event():
            stream = registry.stream()
            pending = asyncio.ensure_future(stream.__anext__())
            await asyncio.sleep(0)
            registry.announce_ready("tab-1", RODEO)
            event = await asyncio.wait_for(pending, timeout=1)
            await stream.aclose()
            return event

        event = asyncio.run(first_event())
        assert event.connection.role == AgentRole.IDENTIFIER_SOURCE
