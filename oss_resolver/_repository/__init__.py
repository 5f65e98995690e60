"""Source repository inference."""

from .builtins import NODE_CORE_MODULES, is_node_builtin, node_builtin_location
from .forges import FORGE_HOSTS, forge_web_url, parse_forge_url
from .inference import RepositoryHints, RepositoryInference, best_candidate, rank_candidates

__all__ = [
    "RepositoryInference",
    "RepositoryHints",
    "best_candidate",
    "rank_candidates",
    "parse_forge_url",
    "forge_web_url",
    "FORGE_HOSTS",
    "NODE_CORE_MODULES",
    "is_node_builtin",
    "node_builtin_location",
]
