# src/clippy_tasks/llm/offline.py

from __future__ import annotations

import json

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Every non-empty line of a text upload becomes one Medium-priority task owned
    by "me"; lines starting with "decision:" become decisions. Audio is not
    understood offline and yields an empty draft.
    """

    def complete_json(self, messages: list[ChatMessage], system_prompt: str) -> str:
        text = ""
        for m in reversed(messages):
            if m.get("role") == "user" and isinstance(m.get("content"), str):
                text = m["content"]
                break

        tasks = []
        decisions = []
        for line in text.splitlines():
            line = line.strip().strip("-").strip()
            if not line or line == "---":
                continue
            if line.lower().startswith("decision:"):
                decisions.append({"description": line.split(":", 1)[1].strip()})
                continue
            if line.lower().startswith("analyze the following"):
                continue
            tasks.append(
                {
                    "description": line,
                    "assignee": "me",
                    "priority": "Medium",
                    "department": "General",
                    "deadline": "no deadline",
                }
            )

        summary = "Offline demo mode: no external LLM is configured." if tasks or decisions else "No content."
        return json.dumps({"summary": summary, "tasks": tasks, "decisions": decisions}, ensure_ascii=False)
