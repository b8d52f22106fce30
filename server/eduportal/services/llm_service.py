"""
Structured LLM Service.

Wraps OpenAI structured outputs: every advisory call sends one request with
a Pydantic response model and gets back either a validated instance or None.
"""
from typing import Type, TypeVar, Optional, Sequence
from pydantic import BaseModel
from openai import AsyncOpenAI
from eduportal.config import settings

T = TypeVar("T", bound=BaseModel)


def image_part(image_base64: str, mime_type: str = "image/png") -> dict:
    """Inline image content part for a chat message."""
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
    }


class StructuredLLMService:
    """Service for generating structured outputs from LLMs."""

    def __init__(self):
        self.client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = settings.advisor_model

    async def generate_response(
        self,
        response_model: Type[T],
        system_prompt: str,
        user_prompt: str,
        images: Sequence[str] = (),
        temperature: float = 0.7,
        max_tokens: int = 4000
    ) -> Optional[T]:
        """
        Generate a structured response ensuring it matches the Pydantic model.

        Network errors, API errors, refusals and schema violations all come
        back as None. Nothing is retried here: each call costs quota, so a
        retry is the caller's (user's) decision.
        """
        if images:
            user_content = [{"type": "text", "text": user_prompt}]
            user_content.extend(image_part(img) for img in images)
        else:
            user_content = user_prompt

        try:
            completion = await self.client.chat.completions.parse(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                response_format=response_model,
                temperature=temperature,
                max_tokens=max_tokens
            )

            message = completion.choices[0].message
            if message.parsed is None:
                print(f"⚠️ Structured LLM returned no {response_model.__name__}: {message.refusal}")
                return None
            return message.parsed

        except Exception as e:
            print(f"❌ Structured LLM Generation Error: {e}")
            return None


# Singleton instance
llm_service = StructuredLLMService()
