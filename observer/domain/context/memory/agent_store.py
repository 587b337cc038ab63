from abc import ABC, abstractmethod
from typing import Dict, List, Any
import asyncio
from datetime import datetime

import structlog

from observer.domain.models.agent_state import CompleteAgent

logger = structlog.get_logger(__name__)


class AgentNotFoundError(KeyError):
    """Raised when an agent id is not in the store"""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(agent_id)


class AgentStore(ABC):
    """Read side of agent persistence used during pre-processing"""

    @abstractmethod
    async def get_memory(self, agent_id: str) -> str:
        """Return the persisted memory blob of an agent"""
        pass


class InMemoryAgentStore(AgentStore):
    """Process-local agent store guarded by an asyncio lock"""

    def __init__(self):
        self.agents: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def save_agent(self, agent: CompleteAgent, code: str = "") -> CompleteAgent:
        """Create or update an agent record, keeping existing memory"""

        async with self._lock:
            now = datetime.utcnow()
            existing = self.agents.get(agent.id)

            self.agents[agent.id] = {
                "agent": agent.model_copy(),
                "code": code,
                "memory": existing["memory"] if existing else "",
                "created_at": existing["created_at"] if existing else now,
                "updated_at": now
            }

        logger.info("Agent saved", agent_id=agent.id, created=existing is None)
        return agent

    async def get_agent(self, agent_id: str) -> CompleteAgent:
        """Get an agent record"""

        async with self._lock:
            return self._entry(agent_id)["agent"].model_copy()

    async def list_agents(self) -> List[CompleteAgent]:
        """Get all agents in insertion order"""

        async with self._lock:
            return [entry["agent"].model_copy() for entry in self.agents.values()]

    async def delete_agent(self, agent_id: str) -> bool:
        """Delete an agent and its memory"""

        async with self._lock:
            if agent_id in self.agents:
                del self.agents[agent_id]
                return True
            return False

    async def get_code(self, agent_id: str) -> str:
        """Get the post-processing code saved with an agent"""

        async with self._lock:
            return self._entry(agent_id)["code"]

    async def get_memory(self, agent_id: str) -> str:
        async with self._lock:
            return self._entry(agent_id)["memory"]

    async def update_memory(self, agent_id: str, memory: str) -> None:
        """Replace the memory blob of an agent"""

        async with self._lock:
            entry = self._entry(agent_id)
            entry["memory"] = memory
            entry["updated_at"] = datetime.utcnow()

    async def clear_memory(self, agent_id: str) -> None:
        """Reset the memory blob of an agent"""

        await self.update_memory(agent_id, "")

    def _entry(self, agent_id: str) -> Dict[str, Any]:
        # Callers hold the lock
        try:
            return self.agents[agent_id]
        except KeyError:
            raise AgentNotFoundError(agent_id) from None
