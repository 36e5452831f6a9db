"""
Agent profiles for the autonomous trading loop.

An agent is an owner address, an id, the market it trades, a personality and
a DNA vector. Profiles are loaded from a JSON file holding either a list of
agents or ``{"agents": [...]}``. DNA can be given as a nested camelCase
mapping in [0, 100] or as ``dna_*`` columns holding [0, 1] fractions, the
way the agents table stores them.
"""

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any

from clawtrader.analysis.dna import AgentDNA
from clawtrader.utils import get_logger

from .personality import Personality

logger = get_logger(__name__)

_FRACTION_COLUMNS = {
    "dna_risk_tolerance": "risk_tolerance",
    "dna_aggression": "aggression",
    "dna_pattern_recognition": "pattern_recognition",
    "dna_timing_sensitivity": "timing_sensitivity",
    "dna_contrarian_bias": "contrarian_bias",
}


@dataclass(frozen=True)
class AgentProfile:
    agent_id: str
    user_address: str
    symbol: str
    personality: Personality = Personality.ADAPTIVE
    dna: AgentDNA = field(default_factory=AgentDNA)
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentProfile":
        """
        Build a profile from a camelCase or snake_case mapping.

        Raises:
            ValueError: If the agent id, owner address or symbol is missing
        """
        agent_id = data.get("agentId") or data.get("agent_id") or data.get("id")
        user_address = (
            data.get("userAddress") or data.get("user_address") or data.get("owner_address")
        )
        symbol = data.get("symbol")
        if not agent_id or not user_address or not symbol:
            raise ValueError(f"Agent entry needs an id, owner address and symbol: {data!r}")

        if isinstance(data.get("dna"), dict):
            dna = AgentDNA.from_dict(data["dna"])
        elif any(column in data for column in _FRACTION_COLUMNS):
            dna = AgentDNA.from_fractions(
                **{
                    trait: float(data[column])
                    for column, trait in _FRACTION_COLUMNS.items()
                    if data.get(column) is not None
                }
            )
        else:
            dna = AgentDNA()

        return cls(
            agent_id=str(agent_id),
            user_address=str(user_address),
            symbol=str(symbol).lower(),
            personality=Personality.parse(data.get("personality")),
            dna=dna,
            name=str(data.get("name") or agent_id),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "userAddress": self.user_address,
            "symbol": self.symbol,
            "personality": self.personality.value,
            "dna": self.dna.to_dict(),
            "name": self.name,
        }


def load_agents(path: str | Path) -> list[AgentProfile]:
    """
    Load agent profiles from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or an entry is malformed
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid agents file {path}: {e}") from e

    entries = raw.get("agents", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ValueError(f"Agents file {path} must hold a list of agents")

    agents = [AgentProfile.from_dict(entry) for entry in entries]
    logger.info("agents_loaded", path=str(path), count=len(agents))
    return agents
