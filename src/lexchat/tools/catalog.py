"""Static catalog of the legal tools offered to the model.

Adding a tool is a deployment-time change: declare its ``ToolSpec`` here
and register a handler for it in :mod:`lexchat.tools.handlers`.
"""

from __future__ import annotations

from lexchat.tools.base import ToolParameter, ToolSpec


def _text_tool(name: str, description: str, text_description: str) -> ToolSpec:
    return ToolSpec(
        name=name,
        description=description,
        properties=(ToolParameter("text", text_description),),
        required=frozenset({"text"}),
    )


LEGAL_TOOLS: tuple[ToolSpec, ...] = (
    _text_tool(
        "extract_legal_info",
        "Extract parties, terms, dates, and obligations from a legal text as JSON.",
        "The legal text to extract information from",
    ),
    ToolSpec(
        name="review_legal_text",
        description=(
            "Review a legal text and summarize potential issues and improvements."
        ),
        properties=(
            ToolParameter("text", "The legal text to review"),
            ToolParameter(
                "extractedInfo",
                "JSON from extract_legal_info; filled in automatically when "
                "an extraction ran earlier in this conversation turn",
            ),
        ),
        required=frozenset({"text"}),
    ),
    ToolSpec(
        name="draft_improved_legal_text",
        description="Draft an improved version of a legal text from a review summary.",
        properties=(
            ToolParameter("originalText", "The original legal text"),
            ToolParameter("reviewSummary", "The review summary to act on"),
        ),
        required=frozenset({"originalText", "reviewSummary"}),
    ),
    ToolSpec(
        name="plan_legal_process",
        description="Create a step-by-step plan for a legal process.",
        properties=(
            ToolParameter("process", "The legal process to plan"),
            ToolParameter("context", "Relevant facts and constraints"),
        ),
        required=frozenset({"process"}),
    ),
    ToolSpec(
        name="missing_clause_detector",
        description="Identify standard clauses missing for the given contract type.",
        properties=(
            ToolParameter("text", "The contract text to check"),
            ToolParameter(
                "contract_type", "The type of contract, e.g. lease, NDA, employment"
            ),
        ),
        required=frozenset({"text", "contract_type"}),
    ),
    _text_tool(
        "defined_terms_checker",
        "Ensure all defined terms are properly introduced and consistently used.",
        "The legal text to check for defined terms",
    ),
    _text_tool(
        "jurisdiction_identifier",
        "Recognize and flag jurisdiction-specific language or requirements.",
        "The legal text to check for jurisdiction-specific language",
    ),
    _text_tool(
        "legal_citation_validator",
        "Check the format and accuracy of legal citations.",
        "The legal text to validate citations",
    ),
    _text_tool(
        "ambiguity_detector",
        "Highlight potentially ambiguous phrases or clauses.",
        "The legal text to check for ambiguities",
    ),
    _text_tool(
        "conflict_checker",
        "Identify conflicting statements within the document.",
        "The legal text to check for conflicts",
    ),
    _text_tool(
        "precedent_matcher",
        "Find similar clauses or language from a database of precedents.",
        "The legal text to match against precedents",
    ),
    _text_tool(
        "legal_jargon_simplifier",
        "Suggest plain language alternatives for complex legal terms.",
        "The legal text to simplify",
    ),
    ToolSpec(
        name="compliance_checker",
        description="Verify if the document meets specific regulatory requirements.",
        properties=(
            ToolParameter("text", "The legal text to check for compliance"),
            ToolParameter("regulation", "The specific regulation to check against"),
        ),
        required=frozenset({"text", "regulation"}),
    ),
    _text_tool(
        "risk_phrase_identifier",
        "Flag phrases that may increase legal risk.",
        "The legal text to check for risk phrases",
    ),
    _text_tool(
        "signature_block_formatter",
        "Properly format and place signature blocks.",
        "The legal text to format signature blocks",
    ),
    _text_tool(
        "governing_law_verifier",
        "Ensure the governing law clause is appropriate and consistent.",
        "The legal text to verify governing law",
    ),
    ToolSpec(
        name="todo_manager",
        description="Add, list, or remove follow-up to-do items.",
        properties=(
            ToolParameter("action", "One of: add, list, remove"),
            ToolParameter("item", "The to-do text (for add)"),
            ToolParameter("id", "The id of the item to remove (for remove)"),
        ),
        required=frozenset({"action"}),
    ),
)
