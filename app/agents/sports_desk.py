"""Sports desk agent that gathers recent results as compact boxes."""

import logging

from pydantic import BaseModel, Field

from app.agents.base_agent import BaseAgent
from app.integrations.web_search import TavilySearchClient
from app.models.documents import SportsBox

logger = logging.getLogger(__name__)


class SportsDeskInput(BaseModel):
    """Input for sports desk agent."""

    date: str = Field(description="Date the results should cover")


class SportsDeskOutput(BaseModel):
    """Output from sports desk agent."""

    boxes: list[SportsBox] = Field(default_factory=list)


class SportsDeskAgent(BaseAgent[SportsDeskInput, SportsDeskOutput]):
    """Agent that searches the web for recent sports results.

    Registers a ``web_search`` tool backed by Tavily; search failures are
    returned to the model as text so one bad query does not fail the run.
    """

    model_tier = "standard"
    temperature = 0.7

    def __init__(
        self,
        model_override: str | None = None,
        search_client: TavilySearchClient | None = None,
    ) -> None:
        super().__init__(model_override)
        self._search_client = search_client

    @property
    def system_prompt(self) -> str:
        return """You are the sports journalist of "The Daily Agent". Gather recent sports results and turn them into COMPACT data boxes.

Instructions:
1. Use the web_search tool for football leagues, cricket, basketball, tennis and Formula 1
2. Create 15-25 boxes covering scores, standings and upcoming schedules
3. Each box has a sport, a short title, compact content and a type: scores, standings or schedule
4. Only report results you found; skip a sport rather than inventing numbers"""

    @property
    def output_type(self) -> type[SportsDeskOutput]:
        return SportsDeskOutput

    def _setup_tools(self) -> None:
        search_client = self._search_client

        @self.agent.tool_plain
        async def web_search(query: str) -> str:
            """Search for sports scores, results, standings, and schedules."""
            if search_client is None:
                return "Unable to fetch data: web search is not configured"
            return await search_client.search_text(query)

    def _build_prompt(self, input_data: SportsDeskInput) -> str:
        return f"""Date: {input_data.date}

Search for the latest results and build the sports boxes for this date."""
