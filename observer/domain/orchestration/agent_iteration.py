from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from datetime import datetime
import structlog

from observer.domain.context.memory.agent_store import InMemoryAgentStore
from observer.domain.models.agent_state import PreProcessorResult
from observer.domain.preprocessing.pre_processor import PreProcessor

logger = structlog.get_logger(__name__)


class ModelClient(ABC):
    """Sends an expanded prompt and its images to a language model"""

    @abstractmethod
    async def send_prompt(self, model_name: str, result: PreProcessorResult) -> str:
        """Send the prompt and return the model's text response"""
        pass


class AgentIterationRunner:
    """Runs a single execution cycle of an agent.

    Scheduling, retries and interpretation of the response belong to the
    caller; a failure in the store or model client propagates.
    """

    def __init__(
        self,
        store: InMemoryAgentStore,
        pre_processor: PreProcessor,
        model_client: ModelClient
    ):
        self.store = store
        self.pre_processor = pre_processor
        self.model_client = model_client
        self.last_run: Dict[str, datetime] = {}

    async def run_iteration(self, agent_id: str) -> str:
        """Pre-process the agent's prompt and send it to its model"""

        agent = await self.store.get_agent(agent_id)

        logger.info("Starting agent iteration", agent_id=agent_id, model=agent.model_name)

        result = await self.pre_processor.process(agent.id, agent.system_prompt)
        response = await self.model_client.send_prompt(agent.model_name, result)

        self.last_run[agent_id] = datetime.utcnow()
        logger.info(
            "Agent iteration complete",
            agent_id=agent_id,
            images=len(result.images),
            response_length=len(response)
        )
        return response

    def get_info(self, agent_id: str) -> Dict[str, Optional[Any]]:
        """Get iteration bookkeeping for an agent"""
        last_run = self.last_run.get(agent_id)
        return {
            "agent_id": agent_id,
            "last_run": last_run.isoformat() if last_run else None
        }
