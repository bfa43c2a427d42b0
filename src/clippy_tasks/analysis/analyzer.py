# src/clippy_tasks/analysis/analyzer.py

"""
Meeting analyzer backed by an LLM client.

Text or base64 audio (+ optional team roster) -> DraftResult.
Any failure, transport or schema, is an AnalysisError; the caller shows
"analysis failed, retry" and nothing is staged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

from ..core.errors import AnalysisError, ValidationError
from ..core.ports import ChatMessage, LLMClient
from ..llm.client import friendly_llm_error_message
from ..tasks.task_models import NO_DEADLINE, DraftResult
from .draft import parse_draft_json

logger = logging.getLogger(__name__)

ANALYZER_SYSTEM_PROMPT = """
You are Clippy, a professional meeting assistant.

Analyze the provided meeting record (text or audio) and extract:
- summary: 2-3 neutral sentences describing the discussion;
- tasks: concrete action items;
- decisions: explicit conclusions or agreements that were reached.

Reference current time: {now}
{roster}

Task rules:
- assignee: the real name of the person who will do it, exactly as spoken.
  Never invent placeholders such as "Assignee1" or "Employee A".
{roster_rule}
- If the speaker commits to an item ("I'll do it") and their name is unknown,
  or the record is a personal note, use "me". If nobody is responsible use "Unassigned".
- priority: one of "High", "Medium", "Low".
- department: the team or area the task belongs to; "General" if unclear.
- deadline: convert relative expressions ("tomorrow", "tonight", "next Tuesday")
  to absolute values using the reference time above, formatted as
  "YYYY-MM-DD" or "YYYY-MM-DD HH:mm". Use "{no_deadline}" when there is none.

Output format:
Return STRICT JSON only, no extra text, no Markdown:
{{"summary": "...",
  "tasks": [{{"description": "...", "assignee": "...", "priority": "High|Medium|Low",
             "department": "...", "deadline": "..."}}],
  "decisions": [{{"description": "..."}}]}}
""".strip()

# MIME subtype -> input_audio format accepted by OpenAI-compatible APIs.
_AUDIO_FORMATS = {
    "wav": "wav",
    "x-wav": "wav",
    "wave": "wav",
    "mpeg": "mp3",
    "mp3": "mp3",
}


def _format_now(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M (%A)")


def build_system_prompt(team_roster: Sequence[str] | None, now: datetime | None = None) -> str:
    now = now or datetime.now().astimezone()
    roster = ""
    roster_rule = ""
    if team_roster:
        roster = f"Current team members: [{', '.join(team_roster)}]."
        roster_rule = (
            "- IMPORTANT: when a name from the current team member list is mentioned, "
            "assign the task using exactly that member's name."
        )
    return ANALYZER_SYSTEM_PROMPT.format(
        now=_format_now(now),
        roster=roster,
        roster_rule=roster_rule,
        no_deadline=NO_DEADLINE,
    )


def build_messages(content: str, mime_type: str | None) -> list[ChatMessage]:
    if mime_type and mime_type.startswith("audio/"):
        subtype = mime_type.split("/", 1)[1].split(";", 1)[0].strip().lower()
        fmt = _AUDIO_FORMATS.get(subtype)
        if fmt is None:
            raise AnalysisError(f"unsupported audio type {mime_type!r} (use wav or mp3)")
        return [
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "Analyze the following audio and extract the summary, tasks and decisions.",
                    },
                    {"type": "input_audio", "input_audio": {"data": content, "format": fmt}},
                ],
            }
        ]
    return [{"role": "user", "content": f"Analyze the following text:\n\n---\n{content}\n---"}]


class LLMAnalyzer:
    """Analyzer port implementation on top of a blocking LLMClient."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def analyze(
        self,
        content: str,
        *,
        mime_type: str | None = None,
        team_roster: Sequence[str] | None = None,
    ) -> DraftResult:
        if not content or not content.strip():
            raise AnalysisError("nothing to analyze: content is empty")

        messages = build_messages(content, mime_type)
        system_prompt = build_system_prompt(team_roster)

        try:
            raw = await asyncio.to_thread(self._llm.complete_json, messages, system_prompt)
        except Exception as exc:
            logger.warning("Analysis call failed: %s", exc)
            raise AnalysisError(f"analysis failed, retry ({friendly_llm_error_message(exc)})") from exc

        try:
            draft = parse_draft_json(raw)
        except ValidationError as exc:
            logger.warning("Analyzer returned a malformed draft: %s", exc)
            raise AnalysisError(f"analysis failed, retry (malformed result: {exc})") from exc

        logger.info(
            "Analysis done: tasks=%d decisions=%d audio=%s roster=%d",
            len(draft.tasks),
            len(draft.decisions),
            bool(mime_type and mime_type.startswith("audio/")),
            len(team_roster or ()),
        )
        return draft
