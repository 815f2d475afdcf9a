"""Upstream wire format for the chat-completions gateway."""

from __future__ import annotations

from typing import Any

from darwin_orchestrator.core.types import CompletionRequest, DocumentPart, TextPart


def _content(request: CompletionRequest) -> str | list[dict[str, Any]]:
    if isinstance(request.payload, str):
        return request.payload

    parts: list[dict[str, Any]] = []
    for part in request.payload:
        if isinstance(part, DocumentPart):
            # The gateway has no document content type; PDFs ride the image slot.
            parts.append({"type": "image_url", "image_url": {"url": part.data_uri}})
        elif isinstance(part, TextPart):
            parts.append({"type": "text", "text": part.text})
    return parts


def build_request_body(request: CompletionRequest, model: str) -> dict[str, Any]:
    """Build the JSON body for one gateway call against `model`.

    Structured output is requested as a single function tool with a forced
    `tool_choice`, so the answer arrives as tool-call arguments.
    """
    body: dict[str, Any] = {
        "model": model,
        "messages": [
            {"role": "system", "content": request.system_instruction},
            {"role": "user", "content": _content(request)},
        ],
        "temperature": request.temperature,
        "max_tokens": request.max_output_tokens,
    }

    structured = request.structured_output
    if structured is not None:
        body["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": structured.name,
                    "description": structured.description,
                    "parameters": dict(structured.schema),
                },
            }
        ]
        body["tool_choice"] = {
            "type": "function",
            "function": {"name": structured.name},
        }
    return body
