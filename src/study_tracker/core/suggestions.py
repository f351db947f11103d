"""
Topic suggestions for a milestone.

The generator is an opaque text service: it receives the milestone's text
and returns a short ordered list of topic names. Suggestions already
covered by the milestone's topics are dropped here.
"""

import asyncio
import logging
from typing import Iterable, Optional

import httpx

from ..errors import SuggestionServiceFailure

logger = logging.getLogger(__name__)

NO_SUGGESTIONS = "No new suggestions found."

PROMPT_TEMPLATE = (
	'Generate a short list of 3-5 study topics related to the milestone: "{milestone}". '
	"Return the topics as a simple comma-separated list."
)


def split_suggestions(text: str) -> list[str]:
	"""Split a comma-separated model reply into trimmed topic names."""
	return [part.strip() for part in text.split(",") if part.strip()]


def filter_suggestions(suggestions: Iterable[str], existing: Iterable[str]) -> list[str]:
	"""
	Drop suggestions that match an existing topic name or an earlier
	suggestion, ignoring case.

	Returns ``[NO_SUGGESTIONS]`` when nothing is left.
	"""
	seen = {name.strip().lower() for name in existing}
	result = []
	for suggestion in suggestions:
		name = suggestion.strip()
		key = name.lower()
		if not name or key in seen:
			continue
		seen.add(key)
		result.append(name)
	return result or [NO_SUGGESTIONS]


def real_suggestions(suggestions: Iterable[str]) -> list[str]:
	"""Suggestions without the display sentinel."""
	return [s for s in suggestions if s != NO_SUGGESTIONS]


class Suggester:
	"""Base class for topic generators."""

	async def suggest(self, milestone_text: str) -> list[str]:
		raise NotImplementedError


class GeminiSuggester(Suggester):
	"""
	Topic generator backed by the Gemini API (google-genai).

	Usage:
		suggester = GeminiSuggester(api_key=config.gemini_api_key)
		names = await suggester.suggest("Midterm: Linear Algebra")
	"""

	def __init__(self, api_key: str = "", model: str = "gemini-2.5-flash", client: Optional[object] = None):
		self.api_key = api_key
		self.model = model
		self._client = client

	def _get_client(self):
		if self._client is None:
			if not self.api_key:
				raise SuggestionServiceFailure(
					"API key is missing. Please set the GEMINI_API_KEY environment variable.",
					misconfigured=True,
				)
			from google import genai
			self._client = genai.Client(api_key=self.api_key)
		return self._client

	async def suggest(self, milestone_text: str) -> list[str]:
		from google.genai import errors, types

		client = self._get_client()
		prompt = PROMPT_TEMPLATE.format(milestone=milestone_text)

		try:
			response = await client.aio.models.generate_content(
				model=self.model,
				contents=prompt,
				config=types.GenerateContentConfig(temperature=0.7),
			)
		except errors.APIError as e:
			logger.error(f"Suggestion request failed: {e}")
			raise SuggestionServiceFailure(f"Failed to fetch suggestions: {e}") from e
		except (httpx.HTTPError, asyncio.TimeoutError) as e:
			logger.error(f"Suggestion service unreachable: {e!r}")
			raise SuggestionServiceFailure(f"Suggestion service unreachable: {e}") from e

		text = response.text or ""
		suggestions = split_suggestions(text)
		logger.debug(f"Gemini suggested {len(suggestions)} topics for {milestone_text!r}")
		return suggestions


def get_suggester(config=None) -> Suggester:
	"""Build the configured suggester."""
	if config is None:
		from ..config import get_config
		config = get_config()
	return GeminiSuggester(api_key=config.gemini_api_key, model=config.suggestion_model)
