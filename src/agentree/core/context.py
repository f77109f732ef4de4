"""Context resolution: turns raw context items into file, URL and text content.

Loading is best-effort. An item that cannot be read is logged and skipped so
a partially resolved context never blocks an agent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

URL_TIMEOUT_SECONDS = 30


class TaskContext(BaseModel):
    files: dict[str, str] = Field(default_factory=dict)
    urls: dict[str, str] = Field(default_factory=dict)
    text: list[str] = Field(default_factory=list)


def is_file_path(item: str) -> bool:
    if item.startswith(("./", "../", "/")):
        return True
    return "." in item and " " not in item and not item.startswith("http")


def is_url(item: str) -> bool:
    parsed = urlparse(item)
    return bool(parsed.scheme and parsed.netloc)


async def fetch_url(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    if client is not None:
        response = await client.get(url)
        response.raise_for_status()
        return response.text
    async with httpx.AsyncClient(timeout=URL_TIMEOUT_SECONDS, follow_redirects=True) as own_client:
        response = await own_client.get(url)
        response.raise_for_status()
        return response.text


async def load_context(
    items: list[str],
    client: Optional[httpx.AsyncClient] = None,
) -> TaskContext:
    """Resolve context items into a TaskContext."""
    context = TaskContext()

    for item in items:
        try:
            if is_file_path(item):
                context.files[item] = Path(item).resolve().read_text(encoding="utf-8")
            elif is_url(item):
                context.urls[item] = await fetch_url(item, client)
            else:
                context.text.append(item)
        except Exception as e:
            logger.warning("Failed to load context item %r: %s", item, e)

    return context


def format_context_for_prompt(context: TaskContext) -> str:
    """Serialize resolved context as markdown sections."""
    parts: list[str] = []

    if context.files:
        parts.append("\n## Files:\n")
        for file_path, content in context.files.items():
            parts.append(f"\n### {file_path}\n```\n{content}\n```\n")

    if context.urls:
        parts.append("\n## URLs:\n")
        for url, content in context.urls.items():
            parts.append(f"\n### {url}\n```\n{content}\n```\n")

    if context.text:
        parts.append("\n## Context:\n")
        for text in context.text:
            parts.append(f"\n{text}\n")

    return "".join(parts)
