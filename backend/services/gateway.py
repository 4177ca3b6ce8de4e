"""Generate and revise single-file websites through an OpenAI-compatible chat completions API."""
import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional

import requests

from errors import GatewayFailure

logger = logging.getLogger(__name__)

ENHANCE_CREATE_PROMPT = (
    "You are a prompt enhancement specialist. Expand the user's website request into a "
    "detailed prompt covering layout, color scheme, typography, key sections, interactions "
    "and responsive behaviour. Return ONLY the enhanced prompt, at most three paragraphs."
)

GENERATE_CREATE_PROMPT = (
    "You are an expert web developer. Create a complete, production-ready website for this "
    "request: \"{prompt}\"\n\n"
    "Output valid HTML ONLY, as a single file. Use Tailwind CSS for all styling and include "
    "<script src=\"https://cdn.jsdelivr.net/npm/@tailwindcss/browser@4\"></script> in the <head>. "
    "Put any JavaScript in a <script> tag before </body>. No explanations, no markdown."
)

ENHANCE_MODIFY_PROMPT = (
    "You are a prompt enhancement specialist. Rewrite the user's change request for an existing "
    "website as precise, actionable instructions. Return ONLY the rewritten request."
)

GENERATE_MODIFY_PROMPT = (
    "You are an expert web developer. Apply the requested changes to the given HTML document. "
    "Keep the Tailwind CSS approach and the single-file structure. Return the complete updated "
    "HTML ONLY, no explanations, no markdown."
)

CREATION_SUMMARY_PROMPT = (
    "Based on the user's request and the generated HTML, write a brief, friendly message "
    "(2-3 sentences) describing the website that was created."
)

MODIFICATION_SUMMARY_PROMPT = (
    "Based on the user's modification request, write a brief, friendly message (1-2 sentences) "
    "describing what was changed. Be specific about colors, layout or content."
)


@dataclass(frozen=True)
class GenerationResult:
    code: str
    summary: str


def strip_code_fences(text: str) -> str:
    s = (text or "").strip()
    if s.startswith("```"):
        s = re.sub(r"^```[\w-]*\n?", "", s)
        s = re.sub(r"\n?```\s*$", "", s)
    return s.strip()


def _extract_content(data) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


class GenerationGateway:
    """One attempt per call, no retries; every failure surfaces as GatewayFailure.

    `timeout` bounds a whole generate or modify operation, not each request in it.
    """

    def __init__(self, api_key: str, model: str, base_url: str = "https://api.openai.com/v1", timeout: int = 120):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _deadline(self) -> float:
        return time.monotonic() + self.timeout

    def _chat(self, messages: List[dict], max_tokens: int, step: str, deadline: float) -> str:
        if not self.api_key:
            raise GatewayFailure(f"{step} failed: generation API key not configured")
        # every step of one operation shares a single time budget
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.warning("%s skipped, %ss budget exhausted", step, self.timeout)
            raise GatewayFailure(f"{step} failed: request timed out")

        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.7,
            "max_tokens": max_tokens,
        }

        try:
            r = requests.post(url, json=payload, headers=headers, timeout=remaining)
            r.raise_for_status()
            data = r.json()
        except requests.Timeout as e:
            logger.warning("%s timed out after %ss", step, self.timeout)
            raise GatewayFailure(f"{step} failed: request timed out", cause=e)
        except requests.RequestException as e:
            logger.warning("%s request failed: %s", step, e)
            raise GatewayFailure(f"{step} failed: {e}", cause=e)
        except ValueError as e:
            logger.warning("%s returned a non-JSON response: %s", step, e)
            raise GatewayFailure(f"{step} failed: malformed response", cause=e)

        content = _extract_content(data)
        if content is None:
            logger.warning("%s response had no message content: %s", step, data)
            raise GatewayFailure(f"{step} failed: empty response")
        return content.strip()

    def _summarize(self, system_prompt: str, user_content: str, fallback: str, deadline: float) -> str:
        try:
            return self._chat(
                [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_content}],
                max_tokens=200,
                step="Summary",
                deadline=deadline,
            )
        except GatewayFailure as e:
            logger.warning("Falling back to default summary: %s", e)
            return fallback

    def _require_markup(self, raw: str, step: str) -> str:
        code = strip_code_fences(raw)
        if not code:
            raise GatewayFailure(f"{step} failed: model returned no HTML")
        return code

    def generate_from_prompt(self, prompt: str) -> GenerationResult:
        deadline = self._deadline()
        enhanced = self._chat(
            [{"role": "system", "content": ENHANCE_CREATE_PROMPT}, {"role": "user", "content": prompt}],
            max_tokens=500,
            step="Prompt enhancement",
            deadline=deadline,
        )
        raw = self._chat(
            [
                {"role": "system", "content": GENERATE_CREATE_PROMPT.format(prompt=enhanced)},
                {"role": "user", "content": "Generate the website code now."},
            ],
            max_tokens=4000,
            step="HTML generation",
            deadline=deadline,
        )
        code = self._require_markup(raw, "HTML generation")
        summary = self._summarize(
            CREATION_SUMMARY_PROMPT,
            f'User requested: "{prompt}"\n\nGenerated HTML preview: {code[:500]}',
            fallback=f'I\'ve created your website based on your request: "{prompt}".',
            deadline=deadline,
        )
        return GenerationResult(code=code, summary=summary)

    def modify(self, current_code: str, request_text: str) -> GenerationResult:
        deadline = self._deadline()
        enhanced = self._chat(
            [{"role": "system", "content": ENHANCE_MODIFY_PROMPT}, {"role": "user", "content": request_text}],
            max_tokens=300,
            step="Request enhancement",
            deadline=deadline,
        )
        raw = self._chat(
            [
                {"role": "system", "content": GENERATE_MODIFY_PROMPT},
                {
                    "role": "user",
                    "content": f"Current HTML code:\n\n{current_code}\n\n\nRequested changes: {enhanced}\n\n"
                    "Generate the updated HTML code.",
                },
            ],
            max_tokens=4000,
            step="HTML modification",
            deadline=deadline,
        )
        code = self._require_markup(raw, "HTML modification")
        summary = self._summarize(
            MODIFICATION_SUMMARY_PROMPT,
            f'User requested: "{request_text}"',
            fallback=f'I\'ve updated your website based on your request: "{request_text}".',
            deadline=deadline,
        )
        return GenerationResult(code=code, summary=summary)
