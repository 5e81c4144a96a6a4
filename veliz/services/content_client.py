# veliz/services/content_client.py

import logging
from typing import Optional

import httpx

from .. import config
from ..engine.patterns import END_OF_PROPOSAL

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = " ".join(
    [
        "You are a professional business proposal writer for a commercial cleaning company.",
        "Output markdown with only the top-level headings the user asks for.",
        "Copy fenced JSON blocks exactly as given.",
        f"End with the Notes block, then print the single line {END_OF_PROPOSAL} and nothing after it.",
    ]
)

MAX_TOKENS = 2000
TEMPERATURE = 0.7
REGENERATE_TEMPERATURE = 0.8  # more variation when the user asks for another draft


def strip_sentinel(content: Optional[str]) -> str:
    """
    Drop the end-of-proposal marker and anything the model wrote after it.
    """
    if not content:
        return ""
    return content.split(END_OF_PROPOSAL, 1)[0].strip()


def generate_proposal_content(
    prompt: str,
    regenerate: bool = False,
    client: Optional[httpx.Client] = None,
) -> str:
    """
    Ask the content-generation service for proposal markdown.

    Synchronous so the FastAPI endpoints stay plain functions. If the service
    is unreachable, errors out or returns nothing usable, the error is logged
    and "" is returned (which splits into no sections).
    """
    headers = {}
    if config.CONTENT_API_KEY:
        headers["Authorization"] = f"Bearer {config.CONTENT_API_KEY}"

    payload = {
        "model": config.CONTENT_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": MAX_TOKENS,
        "temperature": REGENERATE_TEMPERATURE if regenerate else TEMPERATURE,
        "stop": [END_OF_PROPOSAL],
    }

    post = client.post if client is not None else httpx.post

    try:
        resp = post(
            config.CONTENT_API_URL,
            json=payload,
            headers=headers,
            timeout=config.CONTENT_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("content generation request failed: %r", e)
        return ""

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        logger.warning("content generation returned an unexpected payload: %s", str(data)[:200])
        return ""

    return strip_sentinel(content)
