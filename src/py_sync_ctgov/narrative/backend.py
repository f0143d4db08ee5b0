# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Language-generation backends used to write narrative fields."""

import abc
import logging

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a medical communicator trained to write clinical information for patients
at a high-school reading level (grade 10-12).

Rewrite the provided text to be:
- Clear, friendly, accurate
- Non-technical and non-promissory
- Calm and neutral in tone

Avoid medical jargon when possible.
Define unavoidable terms in plain language.
Keep sentences short and conversational.
Do NOT guarantee benefit.
Do NOT define neurofibromatosis, schwannomatosis, hidradenitis, or epidermolysis bullosa.
"""


class NarrativeBackend(abc.ABC):
    """Interface to a chat-style text generation service."""

    @abc.abstractmethod
    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = SYSTEM_PROMPT,
        temperature: float = 0.3,
    ) -> str:
        """Send one user prompt and return the response text.

        Args:
            prompt: The task-specific user prompt.
            system_prompt: Instruction sent as the system message, or None
                to send the user prompt alone.
            temperature: Sampling temperature.

        Returns:
            The response text, possibly empty. Transport errors propagate.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any client resources held by the backend."""
        return None


class OpenAIBackend(NarrativeBackend):
    """Narrative backend calling the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=2)
        logger.info("OpenAI backend initialized (model: %s)", self.model)

    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = SYSTEM_PROMPT,
        temperature: float = 0.3,
    ) -> str:
        """Send one chat completion request and return the stripped reply."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
        )
        return (response.choices[0].message.content or "").strip()

    async def aclose(self) -> None:
        """Close the underlying AsyncOpenAI client."""
        await self.client.close()
