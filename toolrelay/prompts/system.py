"""System prompt builder."""

from __future__ import annotations

from toolrelay.tools.base import Tool


def build_system_prompt(
    tools: list[Tool] | None = None,
    extra_sections: list[str] | None = None,
) -> str:
    """
    Build the system prompt for the conversation loop.

    Assembles the assistant's role, grounding rules and the tool list into
    a single prompt string.
    """
    sections: list[str] = []

    sections.append(
        "You are a friendly, helpful assistant with access to tools for weather "
        "lookups, knowledge-base search and business data queries. "
        "When a question can be answered with a tool, call the tool instead of "
        "answering from memory."
    )

    sections.append(GROUNDING_SECTION)

    if tools:
        names = {t.name for t in tools}
        tool_lines = [f"- **{t.name}**: {t.description}" for t in tools]
        sections.append("## Available Tools\n\n" + "\n".join(tool_lines))
        if "search_knowledge_base" in names and "get_data_via_odata" in names:
            sections.append(DATA_WORKFLOW_SECTION)

    if extra_sections:
        sections.extend(extra_sections)

    return "\n\n".join(sections)


GROUNDING_SECTION = """## Grounding

- Do not speculate about the user's background, roles or positions.
- Do not assume or change dates and times.
- If a tool returns an error, read it, fix the call if you can, and otherwise tell the user what failed.
- Return answers in markdown and cite source URLs when tools return them."""

DATA_WORKFLOW_SECTION = """## Data Questions

1. First call `search_knowledge_base` to find the entity that holds the data and read its schema and sample records.
2. Then call `get_data_via_odata` with that entity's `entity_id` to fetch current data. Sample records are never a final answer.
- Only use columns that exist in the entity schema.
- For string searches use `contains(tolower(column), 'value')`, never `eq`.
- If the results do not answer the question, search again with different terms before giving up."""
