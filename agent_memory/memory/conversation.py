"""Conversation summarization into memories.

When an agent leaves (or pauses) a conversation, the dialogue it has not yet
remembered is summarized from its own perspective and stored as a
``conversation`` memory.
"""

from datetime import datetime
from typing import Dict, List, Optional

from agent_memory.core.config import MemoryConfig
from agent_memory.core.logging import get_logger
from agent_memory.memory.base import DocumentStore, LanguageModelService
from agent_memory.memory.ingestion import IngestionPipeline
from agent_memory.memory.models import (
    ConversationData,
    MemoryDraft,
    MemoryType,
    Message,
    to_utc,
)

logger = get_logger(__name__)


def chat_history_from_messages(messages: List[Message]) -> List[Dict[str, str]]:
    """Render dialogue as chat messages of the form ``author to recipients: text``."""
    return [
        {
            "role": "user",
            "content": f"{message.author_name} to {', '.join(message.recipient_names)}: {message.text}",
        }
        for message in messages
    ]


class ConversationSummarizer:
    """Turns unsummarized dialogue into a new memory."""

    def __init__(
        self,
        store: DocumentStore,
        llm: LanguageModelService,
        ingestion: IngestionPipeline,
        config: Optional[MemoryConfig] = None,
    ):
        self.store = store
        self.llm = llm
        self.ingestion = ingestion
        self.config = config or MemoryConfig()

    async def recent_messages(
        self,
        agent_id: str,
        conversation_id: str,
        last_spoke_at: Optional[datetime] = None,
    ) -> List[Message]:
        """Messages of a conversation the agent has not summarized yet.

        Args:
            agent_id: Agent doing the remembering
            conversation_id: Conversation to summarize
            last_spoke_at: When the agent last spoke, if known

        Returns:
            Messages sent by or to the agent after its last memory of this
            conversation, oldest first
        """
        # Newest conversation memory of any conversation
        last_memory = await self.store.get_latest_memory_of_type(
            agent_id, MemoryType.CONVERSATION
        )
        if last_spoke_at is not None:
            last_spoke_at = to_utc(last_spoke_at)
        if last_spoke_at and last_memory and last_spoke_at < last_memory.created_at:
            # Nothing said since the last conversation memory
            return []

        same_conversation = (
            last_memory is not None
            and isinstance(last_memory.data, ConversationData)
            and last_memory.data.conversation_id == conversation_id
        )
        if same_conversation:
            boundary: Optional[datetime] = last_memory.created_at
            messages = await self.store.get_conversation_messages(
                conversation_id, created_after=boundary
            )
        else:
            messages = await self.store.get_conversation_messages(conversation_id)
            if not messages:
                return []
            # An older memory of this conversation may exist behind the newest one;
            # only memories formed after the conversation began can matter.
            previous = await self.store.get_latest_memory_of_type(
                agent_id,
                MemoryType.CONVERSATION,
                created_after=messages[0].created_at,
                conversation_id=conversation_id,
            )
            boundary = previous.created_at if previous else None

        return [
            message for message in messages
            if (boundary is None or message.created_at > boundary) and message.involves(agent_id)
        ]

    async def remember_conversation(
        self,
        agent_id: str,
        agent_identity: str,
        conversation_id: str,
        last_spoke_at: Optional[datetime] = None,
        agent_name: Optional[str] = None,
    ) -> bool:
        """Summarize new dialogue into a conversation memory.

        Args:
            agent_id: Agent doing the remembering
            agent_identity: Persona description used in the prompt
            conversation_id: Conversation to summarize
            last_spoke_at: When the agent last spoke, if known
            agent_name: Display name used in the prompt

        Returns:
            True if a memory was created
        """
        messages = await self.recent_messages(agent_id, conversation_id, last_spoke_at)
        if not messages:
            logger.debug("conversation_nothing_to_remember",
                         agent_id=agent_id,
                         conversation_id=conversation_id)
            return False

        name = agent_name or agent_id
        description = await self.llm.complete(
            messages=[
                {
                    "role": "user",
                    "content": (
                        f"The following are messages. You are {name}, and {agent_identity}\n"
                        "I would like you to summarize the conversation in a paragraph "
                        "from your perspective. Add if you like or dislike this interaction."
                    ),
                },
                *chat_history_from_messages(messages),
                {"role": "user", "content": "Summary:"},
            ],
            max_tokens=self.config.summary_max_tokens,
        )

        await self.ingestion.add_memories([
            MemoryDraft(
                agent_id=agent_id,
                description=description,
                data=ConversationData(conversation_id=conversation_id),
            )
        ])

        logger.info("conversation_remembered",
                    agent_id=agent_id,
                    conversation_id=conversation_id,
                    messages=len(messages))
        return True
