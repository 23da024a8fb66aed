# clearing_ui/domain/agents.py
"""
Registry of the analysis agents a user can enable by default.
"""
from typing import Dict, Iterable, List

_KNOWN_AGENTS: Dict[str, str] = {
    "agent_copyright": "Copyright/Email/URL/Author Analysis",
    "agent_ecc": "ECC Analysis",
    "agent_keyword": "Keyword Analysis",
    "agent_mimetype": "MIME-type Analysis",
    "agent_monk": "Monk License Analysis",
    "agent_nomos": "Nomos License Analysis",
    "agent_ojo": "OJO License Analysis",
    "agent_pkgagent": "Package Analysis",
    "agent_reso": "REUSE.Software Analysis",
    "agent_shagent": "Software Heritage Analysis",
}


def list_agents() -> Dict[str, str]:
    """Known agent names mapped to their titles."""
    return dict(_KNOWN_AGENTS)


def expand_agent_list(agent_list: str) -> Dict[str, int]:
    """
    Turn a stored comma-separated list into a flag map with every listed
    agent set to 1. Blank entries are skipped.
    """
    return {name.strip(): 1 for name in agent_list.split(",") if name.strip()}


def user_agents(flags: Dict[str, int]) -> str:
    """Serialize a flag map back to the stored comma-separated form."""
    return ",".join(name for name, enabled in flags.items() if enabled)


def unknown_agents(names: Iterable[str]) -> List[str]:
    return [n for n in names if n not in _KNOWN_AGENTS]
