"""Base class for Pydantic AI agents."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, cast

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.exceptions import UnexpectedModelBehavior

from app.config import settings
from app.core.exceptions import GeneratorOutputError

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for the newsroom's generators.

    Each agent should:
    1. Define the system_prompt property
    2. Define the output_type property
    3. Implement _build_prompt to construct the user prompt
    4. Optionally override _setup_tools to add agent-specific tools

    ``run`` raises ``GeneratorOutputError`` when the model output cannot be
    validated against ``output_type`` after ``max_retries``; callers decide
    whether that is fatal.
    """

    # Model tier for environment-aware resolution (reasoning / standard / fast)
    model_tier: str = "standard"
    # Explicit model override at the class level (bypasses tier resolution)
    model: str | None = None
    temperature: float = 0.7
    max_retries: int = settings.llm_max_retries

    def __init__(self, model_override: str | None = None) -> None:
        """Initialize the agent.

        Model resolution priority:
        1. model_override parameter (explicit runtime override)
        2. model class attribute (if set by subclass)
        3. settings.get_model(self.model_tier) (environment-aware tier fallback)
        """
        if model_override:
            self._model = model_override
        elif self.model:
            self._model = self.model
        else:
            self._model = settings.get_model(self.model_tier)
        self._agent: Agent[None, OutputT] | None = None

        logger.debug(
            "Agent initialized",
            extra={
                "agent": self.__class__.__name__,
                "model": self._model,
                "model_tier": self.model_tier,
            },
        )

    @property
    def agent(self) -> Agent[None, OutputT]:
        """Lazily initialize and return the Pydantic AI agent."""
        if self._agent is None:
            self._agent = cast(
                Agent[None, OutputT],
                Agent(
                    model=self._model,
                    output_type=self.output_type,
                    system_prompt=self.system_prompt,
                    retries=self.max_retries,
                    model_settings={"temperature": self.temperature},
                ),
            )
            self._setup_tools()
        agent = self._agent
        assert agent is not None
        return agent

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt for the agent."""
        pass

    @property
    @abstractmethod
    def output_type(self) -> type[OutputT]:
        """Pydantic model type for structured output."""
        pass

    def _setup_tools(self) -> None:
        """Override to register tools on ``self.agent``."""
        pass

    async def run(self, input_data: InputT) -> OutputT:
        """Run the agent with input data and return its structured output."""
        agent_name = self.__class__.__name__
        prompt = self._build_prompt(input_data)
        logger.info(
            "Agent run started",
            extra={
                "agent": agent_name,
                "prompt_length": len(prompt),
                "model": self._model,
            },
        )

        t0 = time.perf_counter()
        try:
            result = await self.agent.run(prompt)
        except UnexpectedModelBehavior as e:
            logger.warning(
                "Agent output rejected",
                extra={"agent": agent_name, "duration_s": round(time.perf_counter() - t0, 2)},
            )
            raise GeneratorOutputError(agent_name, e.message) from e
        elapsed = time.perf_counter() - t0

        usage = result.usage()
        logger.info(
            "Agent run completed",
            extra={
                "agent": agent_name,
                "duration_s": round(elapsed, 2),
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "total_tokens": usage.total_tokens,
            },
        )

        return result.output

    @abstractmethod
    def _build_prompt(self, input_data: InputT) -> str:
        """Build the user prompt from input data."""
        pass
