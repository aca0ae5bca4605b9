"""
Text Generation Gateway
=======================

Wraps a ranked list of OpenAI chat models behind a single
generate(prompt) -> str call.

Fallback Policy:
----------------
Models are tried strictly in the configured order:

- RateLimitError (quota exceeded / HTTP 429): log and try the next model.
- APITimeoutError (per-attempt ceiling hit): same as quota exceeded.
- BadRequestError (HTTP 400): raise InvalidGenerationRequest right away.
  The prompt itself is defective, so another model would fail the same way.
- AuthenticationError (HTTP 401): raise GenerationAuthenticationFailed.
  This is a deployment problem, not something a retry can fix.
- Any other OpenAI error: raise GenerationError with the upstream message.

If every model was skipped, AllModelsExhausted is raised so callers can tell
"everyone is busy" apart from a hard failure of a single model.

The gateway holds no per-call state; the OpenAI client is injected so tests
can pass a mock and the application can share one client. SDK retries are
turned off for the gateway's calls, so a 429 or a timeout moves straight to
the next model and each model gets one attempt within LLM_TIMEOUT_SECONDS.
"""

import logging
from typing import List, Optional, Sequence

import openai
from openai import OpenAI

from .. import config
from ..errors import (
    AllModelsExhausted,
    GenerationAuthenticationFailed,
    GenerationError,
    InvalidGenerationRequest,
)

logger = logging.getLogger(__name__)

EMPTY_COMPLETION_TEXT = "No response"


def build_openai_client(api_key: Optional[str] = None) -> OpenAI:
    """Create the shared OpenAI client, failing fast when no key is configured."""
    api_key = api_key or config.OPENAI_API_KEY
    logger.debug("OpenAI API key configured: %s", "Yes" if api_key else "No")
    if not api_key:
        raise RuntimeError(
            "OPENAI_API_KEY is not set. "
            "Create a .env file with OPENAI_API_KEY=sk-... at the project root."
        )
    return OpenAI(api_key=api_key)


class TextGenerationGateway:
    def __init__(
        self,
        client: OpenAI,
        models: Sequence[str] = None,
        timeout: float = None,
    ) -> None:
        # one attempt per model; moving on is the fallback loop's job
        self.client = client.with_options(max_retries=0)
        self.models: List[str] = list(models if models is not None else config.LLM_MODELS)
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT_SECONDS
        if not self.models:
            raise ValueError("At least one generation model must be configured")

    def _complete(self, model: str, prompt: str) -> str:
        completion = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            timeout=self.timeout,
        )
        if not completion.choices:
            return EMPTY_COMPLETION_TEXT
        content = completion.choices[0].message.content
        return content or EMPTY_COMPLETION_TEXT

    def generate(self, prompt: str) -> str:
        """
        Return the first successful completion for prompt.

        Raises:
            InvalidGenerationRequest: the service rejected the prompt (400)
            GenerationAuthenticationFailed: the API key was rejected (401)
            GenerationError: any other upstream failure
            AllModelsExhausted: every model hit its quota or timed out
        """
        for model in self.models:
            try:
                text = self._complete(model, prompt)
                logger.debug("Generation succeeded with model %s", model)
                return text
            except openai.RateLimitError:
                logger.warning("Model %s quota exhausted, trying next model", model)
                continue
            except openai.APITimeoutError:
                logger.warning("Model %s timed out after %.1fs, trying next model", model, self.timeout)
                continue
            except openai.BadRequestError as e:
                logger.error("Bad request for model %s: %s", model, e)
                raise InvalidGenerationRequest(f"Invalid request to generation API: {e}") from e
            except openai.AuthenticationError as e:
                logger.error("Authentication error for model %s", model)
                raise GenerationAuthenticationFailed("Generation API authentication failed") from e
            except openai.OpenAIError as e:
                logger.error("Error with model %s: %s", model, e)
                raise GenerationError(str(e)) from e

        logger.error("All generation models exhausted: %s", ", ".join(self.models))
        raise AllModelsExhausted(self.models)
