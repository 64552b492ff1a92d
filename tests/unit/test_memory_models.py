"""Unit tests for memory data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agent_memory.memory.models import (
    ConversationData,
    Memory,
    MemoryDraft,
    MemoryType,
    Message,
    PlanData,
    RankedMemory,
    ReflectionData,
    RelationshipData,
    format_timestamp,
    generate_identifier,
    memory_data_adapter,
    parse_timestamp,
    to_utc,
)


class TestMemoryData:
    """Test the tagged memory payload."""

    def test_payload_variants_dispatch_on_type(self):
        """Each tag parses to its own payload class."""
        cases = [
            ({"type": "conversation", "conversation_id": "conv:1"}, ConversationData),
            ({"type": "relationship", "agent_id": "agent:2"}, RelationshipData),
            ({"type": "reflection", "related_memory_ids": ["memory:1"]}, ReflectionData),
            ({"type": "plan"}, PlanData),
        ]
        for raw, expected in cases:
            assert isinstance(memory_data_adapter.validate_python(raw), expected)

    def test_unknown_tag_rejected(self):
        """Payloads outside the known variants do not validate."""
        with pytest.raises(ValidationError):
            memory_data_adapter.validate_python({"type": "dream"})

    def test_conversation_payload_requires_id(self):
        """A conversation payload needs its conversation id."""
        with pytest.raises(ValidationError):
            memory_data_adapter.validate_python({"type": "conversation"})

    def test_memory_type_property(self):
        """Memory exposes its payload tag as a MemoryType."""
        memory = Memory(
            id="memory:1",
            agent_id="agent:1",
            description="Talked to Bob",
            embedding_id="embedding:1",
            importance=4,
            data=ConversationData(conversation_id="conv:1"),
            created_at=datetime(2025, 1, 15, 12, 0),
        )
        assert memory.memory_type is MemoryType.CONVERSATION


class TestImportanceBounds:
    """Importance must stay within the 0-9 scale."""

    def test_draft_importance_optional(self):
        draft = MemoryDraft(agent_id="agent:1", description="x", data=PlanData())
        assert draft.importance is None

    @pytest.mark.parametrize("importance", [-1, 9.5, 10])
    def test_draft_importance_out_of_range(self, importance):
        with pytest.raises(ValidationError):
            MemoryDraft(agent_id="agent:1", description="x", data=PlanData(), importance=importance)

    def test_memory_importance_out_of_range(self):
        with pytest.raises(ValidationError):
            Memory(
                id="memory:1",
                agent_id="agent:1",
                description="x",
                embedding_id="embedding:1",
                importance=12,
                data=PlanData(),
                created_at=datetime.now(),
            )


class TestHelpers:
    """Test identifier and timestamp helpers."""

    def test_generate_identifier_prefix(self):
        identifier = generate_identifier("memory")
        kind, ulid_part = identifier.split(":", 1)
        assert kind == "memory"
        assert len(ulid_part) == 26

    def test_timestamp_format_is_fixed_width(self):
        """Whole-second timestamps still carry microseconds."""
        whole = datetime(2025, 1, 15, 12, 0, 0)
        fractional = datetime(2025, 1, 15, 12, 0, 0, 1)
        assert len(format_timestamp(whole)) == len(format_timestamp(fractional))
        assert format_timestamp(whole) < format_timestamp(fractional)
        assert parse_timestamp(format_timestamp(fractional)) == fractional.replace(tzinfo=timezone.utc)

    def test_timestamps_normalized_to_utc(self):
        """Aware values are converted, naive values are taken as UTC."""
        local = datetime(2025, 1, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2025-01-15T12:00:00.000000"
        assert to_utc(local) == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert to_utc(datetime(2025, 1, 15, 12, 0)).tzinfo is timezone.utc

    def test_record_created_at_is_utc(self):
        message = Message(
            conversation_id="conv:1",
            author_id="agent:1",
            author_name="Alice",
            text="Hi",
            created_at=datetime(2025, 1, 15, 7, 0, tzinfo=timezone(timedelta(hours=-5))),
        )
        assert message.created_at == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert message.created_at.utcoffset() == timedelta(0)

    def test_message_involves(self):
        message = Message(
            conversation_id="conv:1",
            author_id="agent:1",
            author_name="Alice",
            recipient_ids=["agent:2"],
            recipient_names=["Bob"],
            text="Hi Bob",
        )
        assert message.involves("agent:1")
        assert message.involves("agent:2")
        assert not message.involves("agent:3")

    def test_ranked_memory_to_dict(self):
        memory = Memory(
            id="memory:1",
            agent_id="agent:1",
            description="x",
            embedding_id="embedding:1",
            importance=3,
            data=PlanData(),
            created_at=datetime(2025, 1, 15, 12, 0),
        )
        result = RankedMemory(memory=memory, overall_score=2.5, relevance=0.9, importance=3, recency=1.0)
        as_dict = result.to_dict()
        assert as_dict["overall_score"] == 2.5
        assert as_dict["memory"]["data"] == {"type": "plan"}
