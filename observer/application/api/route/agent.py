from typing import List, Optional
from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field
import structlog

from observer.domain.context.memory.agent_store import AgentNotFoundError, InMemoryAgentStore
from observer.domain.models.agent_state import CompleteAgent, PreProcessorResult
from observer.domain.preprocessing.pre_processor import PreProcessor

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/agents", tags=["agents"])


class SaveAgentRequest(CompleteAgent):
    """Agent record plus its post-processing code"""
    code: str = ""


class MemoryPayload(BaseModel):
    """Memory blob of an agent"""
    agent_id: Optional[str] = None
    memory: str


class PreprocessRequest(BaseModel):
    """Prompt to expand; defaults to the agent's own system prompt"""
    prompt: Optional[str] = Field(None, description="Prompt template to expand")


def get_store(request: Request) -> InMemoryAgentStore:
    return request.app.state.store


def get_pre_processor(request: Request) -> PreProcessor:
    return request.app.state.pre_processor


@router.post("", response_model=CompleteAgent, status_code=201)
async def save_agent(request: Request, payload: SaveAgentRequest):
    """Create or update an agent"""
    agent = CompleteAgent(**payload.model_dump(exclude={"code"}))
    return await get_store(request).save_agent(agent, payload.code)


@router.get("", response_model=List[CompleteAgent])
async def list_agents(request: Request):
    """List all agents"""
    return await get_store(request).list_agents()


@router.get("/{agent_id}", response_model=CompleteAgent)
async def get_agent(request: Request, agent_id: str):
    """Get a single agent"""
    try:
        return await get_store(request).get_agent(agent_id)
    except AgentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Agent '{agent_id}' not found")


@router.delete("/{agent_id}", status_code=204)
async def delete_agent(request: Request, agent_id: str):
    """Delete an agent and its memory"""
    if not await get_store(request).delete_agent(agent_id):
        raise HTTPException(status_code=404, detail=f"Agent '{agent_id}' not found")
    return Response(status_code=204)


@router.get("/{agent_id}/memory", response_model=MemoryPayload)
async def get_memory(request: Request, agent_id: str):
    """Get an agent's memory"""
    try:
        memory = await get_store(request).get_memory(agent_id)
    except AgentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Agent '{agent_id}' not found")
    return MemoryPayload(agent_id=agent_id, memory=memory)


@router.put("/{agent_id}/memory", response_model=MemoryPayload)
async def update_memory(request: Request, agent_id: str, payload: MemoryPayload):
    """Replace an agent's memory"""
    try:
        await get_store(request).update_memory(agent_id, payload.memory)
    except AgentNotFoundError:
        raise HTTPException(status_code=404, detail=f"Agent '{agent_id}' not found")
    return MemoryPayload(agent_id=agent_id, memory=payload.memory)


@router.post("/{agent_id}/preprocess", response_model=PreProcessorResult, response_model_by_alias=True)
async def preprocess(request: Request, agent_id: str, payload: PreprocessRequest):
    """Expand the directives in a prompt for this agent"""

    prompt = payload.prompt
    if prompt is None:
        try:
            agent = await get_store(request).get_agent(agent_id)
        except AgentNotFoundError:
            raise HTTPException(status_code=404, detail=f"Agent '{agent_id}' not found")
        prompt = agent.system_prompt

    logger.info("Pre-processing prompt", agent_id=agent_id, prompt_length=len(prompt))
    return await get_pre_processor(request).process(agent_id, prompt)
