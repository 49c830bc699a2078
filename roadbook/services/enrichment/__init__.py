from .llm_client import NarrativeLLMClient
from .orchestrator import EnrichmentOrchestrator
from .validator import NarrativeValidator, parse_paid_status

__all__ = [
    "EnrichmentOrchestrator",
    "NarrativeLLMClient",
    "NarrativeValidator",
    "parse_paid_status",
]
