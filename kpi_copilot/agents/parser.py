"""Query parser: intent router plus entity extractor as one pure call."""
from kpi_copilot.agents.state import ParsedQuery
from kpi_copilot.agents.nodes.router import classify_intent
from kpi_copilot.agents.nodes.entity_extractor import extract_entities


def parse_query(query: str) -> ParsedQuery:
    """
    Parse a free-text query. Never raises; unmatched input is ``unknown``.

    Args:
        query: User query

    Returns:
        ParsedQuery with intent, entities and the intent confidence
    """
    intent, confidence = classify_intent(query)
    return ParsedQuery(
        raw_query=query,
        intent=intent,
        entities=extract_entities(query),
        confidence=confidence,
    )
