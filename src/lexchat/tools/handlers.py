"""Tool handlers: one coroutine per tool.

Each model-backed handler composes a task prompt from the invocation
input, makes exactly one non-streaming ``provider.send()`` with a
tool-specific system prompt and temperature, and parses the reply.
Handlers raise :class:`ToolError` / :class:`ProviderError` on failure;
the dispatcher turns those into error results.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lexchat.core.errors import (
    InvalidActionError,
    MalformedModelOutputError,
    MissingRequiredFieldError,
    TodoNotFoundError,
)
from lexchat.core.retry import RetryConfig, retry_with_backoff
from lexchat.providers.base import PromptMessage
from lexchat.tools.base import ToolResult
from lexchat.tools.json_extract import extract_json

if TYPE_CHECKING:
    from lexchat.providers.base import ModelProvider
    from lexchat.tools.todo import TodoStore

logger = logging.getLogger(__name__)

_LEGAL_EXPERT = "You are a legal expert AI assistant."
_NOT_PROVIDED = "(not provided)"

EXTRACTION_KEYS = ("parties", "terms", "dates", "obligations")
TODO_ACTIONS = ("add", "list", "remove")


@dataclass(frozen=True, slots=True)
class HandlerDeps:
    """What a handler needs besides its input."""

    provider: ModelProvider
    model_id: str
    todo_store: TodoStore
    max_tokens: int = 4000
    retry: RetryConfig = field(default_factory=RetryConfig)


Handler = Callable[[Mapping[str, str], HandlerDeps], Awaitable[ToolResult]]


async def ask_model(
    deps: HandlerDeps, system: str, prompt: str, *, temperature: float
) -> str:
    """One complete model call with a system prompt; returns the reply text."""
    messages = [
        PromptMessage(role="system", content=system),
        PromptMessage(role="user", content=prompt),
    ]

    async def _send() -> str:
        response = await deps.provider.send(
            messages,
            deps.model_id,
            max_tokens=deps.max_tokens,
            temperature=temperature,
        )
        logger.debug(
            "Tool model call finished in %.0fms (%d output tokens)",
            response.latency_ms,
            response.usage.output_tokens,
        )
        return response.content

    return await retry_with_backoff(_send, deps.retry)


class _Fields(dict[str, str]):
    """Template fields; optional inputs that were not given render as a marker."""

    def __missing__(self, key: str) -> str:
        return _NOT_PROVIDED


def _fields(args: Mapping[str, str]) -> _Fields:
    return _Fields({k: v for k, v in args.items() if v.strip()})


# ── Structured handlers ───────────────────────────────────────


_EXTRACTION_SYSTEM = (
    f"{_LEGAL_EXPERT} Extract key information from legal texts and return it "
    "as a structured JSON object."
)

_EXTRACTION_PROMPT = """\
Extract key information from the following legal text and return it as a \
JSON object with the following structure:
{{
  "parties": [],
  "terms": [],
  "dates": [],
  "obligations": []
}}

Legal text:
{text}

Please ensure the output is a valid JSON object."""


async def extract_legal_info(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
    """Structured extraction. The parsed dict is returned as ``data``."""
    reply = await ask_model(
        deps,
        _EXTRACTION_SYSTEM,
        _EXTRACTION_PROMPT.format_map(_fields(args)),
        temperature=0.0,
    )
    parsed = extract_json(reply)
    info: dict[str, Any] = {key: parsed.get(key) or [] for key in EXTRACTION_KEYS}
    for key in EXTRACTION_KEYS:
        if not isinstance(info[key], list):
            info[key] = [info[key]]
    return ToolResult.success(
        "extract_legal_info", json.dumps(info, indent=2), data=info
    )


_MISSING_CLAUSE_SYSTEM = (
    f"{_LEGAL_EXPERT} Compare contracts against the clauses customarily "
    "expected for their type and report what is missing as JSON."
)

_MISSING_CLAUSE_PROMPT = """\
The following text is a {contract_type} contract. List the standard clauses \
a {contract_type} contract is expected to contain that are missing or \
inadequately covered.

Contract text:
{text}

Return only a JSON object of the form:
{{
  "contract_type": "{contract_type}",
  "missing_clauses": [
    {{"clause": "...", "importance": "high|medium|low", "rationale": "..."}}
  ]
}}"""


async def missing_clause_detector(
    args: Mapping[str, str], deps: HandlerDeps
) -> ToolResult:
    reply = await ask_model(
        deps,
        _MISSING_CLAUSE_SYSTEM,
        _MISSING_CLAUSE_PROMPT.format_map(_fields(args)),
        temperature=0.0,
    )
    parsed = extract_json(reply)
    clauses = parsed.get("missing_clauses")
    if not isinstance(clauses, list):
        msg = "Reply has no 'missing_clauses' list"
        raise MalformedModelOutputError(msg, raw=reply)
    report = {
        "contract_type": parsed.get("contract_type") or args["contract_type"],
        "missing_clauses": clauses,
    }
    return ToolResult.success(
        "missing_clause_detector", json.dumps(report, indent=2), data=report
    )


# ── Prose handlers ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PromptTask:
    """A tool whose result is the model's prose reply to one prompt."""

    name: str
    system: str
    template: str
    temperature: float = 0.0


PROSE_TASKS: tuple[PromptTask, ...] = (
    PromptTask(
        name="review_legal_text",
        system=(
            f"{_LEGAL_EXPERT} Review legal texts and provide detailed summaries "
            "and suggestions for improvement."
        ),
        template=(
            "Review the following legal text and extracted information. Provide "
            "a summary of the review, including any potential issues or "
            "improvements:\n\nLegal text:\n{text}\n\nExtracted information:\n"
            "{extractedInfo}\n\nPlease provide a detailed review summary."
        ),
        temperature=0.2,
    ),
    PromptTask(
        name="draft_improved_legal_text",
        system=(
            f"{_LEGAL_EXPERT} Draft improved versions of legal texts based on "
            "reviews and suggestions."
        ),
        template=(
            "Based on the original legal text and the review summary, draft an "
            "improved version of the legal text:\n\nOriginal text:\n"
            "{originalText}\n\nReview summary:\n{reviewSummary}\n\n"
            "Please provide the improved legal text."
        ),
        temperature=0.3,
    ),
    PromptTask(
        name="plan_legal_process",
        system=(
            f"{_LEGAL_EXPERT} Create detailed plans for legal processes based on "
            "given contexts."
        ),
        template=(
            "Create a detailed plan for the following legal process, considering "
            "the given context:\n\nProcess: {process}\nContext: {context}\n\n"
            "Please provide a step-by-step plan with explanations for each step."
        ),
        temperature=0.2,
    ),
    PromptTask(
        name="defined_terms_checker",
        system=f"{_LEGAL_EXPERT} You audit how defined terms are used in documents.",
        template=(
            "List every defined term in the legal text below. For each, state "
            "where it is defined, whether it is used before its definition, and "
            "any inconsistent capitalisation or usage. Also list capitalised "
            "terms that are used but never defined.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="jurisdiction_identifier",
        system=(
            f"{_LEGAL_EXPERT} You recognise jurisdiction-specific language and "
            "requirements."
        ),
        template=(
            "Identify the jurisdiction(s) the legal text below relies on. Quote "
            "each jurisdiction-specific phrase or requirement and explain what "
            "it implies.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="legal_citation_validator",
        system=f"{_LEGAL_EXPERT} You check legal citations for form and accuracy.",
        template=(
            "Check every legal citation in the text below. For each, report "
            "whether its format is correct, what the correct form would be, and "
            "whether the cited authority plausibly supports the proposition. "
            "Say so explicitly where you cannot verify a citation.\n\n"
            "Legal text:\n{text}"
        ),
    ),
    PromptTask(
        name="ambiguity_detector",
        system=f"{_LEGAL_EXPERT} You find language open to more than one reading.",
        template=(
            "Highlight potentially ambiguous phrases or clauses in the legal "
            "text below. Quote each one, give the competing interpretations, and "
            "suggest a clearer wording.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="conflict_checker",
        system=f"{_LEGAL_EXPERT} You find internal contradictions in documents.",
        template=(
            "Identify statements in the legal text below that conflict with "
            "each other. Quote both sides of each conflict and explain how it "
            "could be resolved.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="precedent_matcher",
        system=(
            f"{_LEGAL_EXPERT} You know commonly used precedent clauses and "
            "market-standard drafting."
        ),
        template=(
            "For the clauses in the legal text below, describe similar "
            "precedent or market-standard language, and note how the text "
            "departs from it.\n\nLegal text:\n{text}"
        ),
        temperature=0.2,
    ),
    PromptTask(
        name="legal_jargon_simplifier",
        system=f"{_LEGAL_EXPERT} You rewrite legal jargon in plain language.",
        template=(
            "Suggest plain language alternatives for the complex legal terms "
            "and phrases in the text below. Present each as the original "
            "wording followed by the plain alternative.\n\nLegal text:\n{text}"
        ),
        temperature=0.3,
    ),
    PromptTask(
        name="compliance_checker",
        system=f"{_LEGAL_EXPERT} You assess documents against regulations.",
        template=(
            "Verify whether the legal text below meets the requirements of "
            "{regulation}. List each relevant requirement, whether it is met, "
            "partially met, or not met, and what change would achieve "
            "compliance.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="risk_phrase_identifier",
        system=f"{_LEGAL_EXPERT} You flag drafting that increases legal risk.",
        template=(
            "Flag the phrases in the legal text below that may increase legal "
            "risk. Quote each phrase, rate the risk as high, medium, or low, and "
            "explain why.\n\nLegal text:\n{text}"
        ),
    ),
    PromptTask(
        name="signature_block_formatter",
        system=f"{_LEGAL_EXPERT} You format execution and signature blocks.",
        template=(
            "Produce properly formatted signature blocks for the parties to the "
            "legal text below, and say where in the document they belong.\n\n"
            "Legal text:\n{text}"
        ),
        temperature=0.3,
    ),
    PromptTask(
        name="governing_law_verifier",
        system=f"{_LEGAL_EXPERT} You review governing law and forum clauses.",
        template=(
            "Check whether the legal text below contains a governing law clause, "
            "whether it is appropriate for the parties and subject matter, and "
            "whether it is consistent with any jurisdiction or dispute "
            "resolution clauses.\n\nLegal text:\n{text}"
        ),
    ),
)


def prose_handler(task: PromptTask) -> Handler:
    """Build a handler that returns the model's reply to ``task``'s prompt."""

    async def _handle(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
        reply = await ask_model(
            deps,
            task.system,
            task.template.format_map(_fields(args)),
            temperature=task.temperature,
        )
        if not reply.strip():
            msg = "Model returned an empty reply"
            raise MalformedModelOutputError(msg, raw=reply)
        return ToolResult.success(task.name, reply)

    _handle.__name__ = task.name
    return _handle


# ── To-do handler ─────────────────────────────────────────────


async def todo_manager(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
    """Run one to-do action. Store I/O happens on a worker thread."""
    action = args["action"].strip().lower()
    store = deps.todo_store

    if action == "add":
        text = args.get("item", "").strip()
        if not text:
            raise MissingRequiredFieldError("todo_manager", "item")
        item_id = await asyncio.to_thread(store.add, text)
        body: dict[str, Any] = {"id": item_id, "item": text}
    elif action == "list":
        items = await asyncio.to_thread(store.list)
        body = {"items": [{"id": i.id, "item": i.item} for i in items]}
    elif action == "remove":
        item_id = args.get("id", "").strip()
        if not item_id:
            raise MissingRequiredFieldError("todo_manager", "id")
        if not await asyncio.to_thread(store.remove, item_id):
            raise TodoNotFoundError(item_id)
        body = {"removed": item_id}
    else:
        raise InvalidActionError(action, TODO_ACTIONS)

    return ToolResult.success("todo_manager", json.dumps(body), data=body)


def default_handlers() -> dict[str, Handler]:
    """Registration table for every tool in the built-in catalog."""
    table: dict[str, Handler] = {
        "extract_legal_info": extract_legal_info,
        "missing_clause_detector": missing_clause_detector,
        "todo_manager": todo_manager,
    }
    for task in PROSE_TASKS:
        table[task.name] = prose_handler(task)
    return table
