"""
Chat assistant sessions.

A conversation is keyed by language + the first 20 characters of the page
context, so switching language or topic starts a fresh conversation while
staying on the same page continues it. Conversations live in a bounded TTL
cache owned by the ChatService instance.
"""
import threading
from typing import Dict, List, Optional

from cachetools import TTLCache
from openai import AsyncOpenAI

from eduportal.config import settings
from eduportal.models import ChatMessage
from eduportal.services.prompt_management import get_system_prompt


LANGUAGE_NAMES: Dict[str, str] = {
    "en-IN": "English (Indian accent)",
    "hi-IN": "Hindi",
    "mr-IN": "Marathi",
}

EMPTY_REPLY = "I'm sorry, I couldn't generate a response. Please try again."
CONNECTION_ERROR_REPLY = "Sorry, I'm having trouble connecting to my brain right now. Please try again later."


def chat_key(lang: str, context: str) -> str:
    return f"chat-session-{lang}-{context[:20]}"


class ChatSession:
    """Message list for one conversation, system instruction first."""

    def __init__(self, system_prompt: str, history: List[ChatMessage]):
        self.messages: List[dict] = [{"role": "system", "content": system_prompt}]
        for msg in history:
            role = "user" if msg.sender == "user" else "assistant"
            self.messages.append({"role": role, "content": msg.text})


class ChatService:
    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        maxsize: int = settings.chat_cache_size,
        ttl: int = settings.chat_cache_ttl_seconds,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = settings.chat_model
        self.sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def _get_session(self, history: List[ChatMessage], context: str, lang: str) -> ChatSession:
        key = chat_key(lang, context)
        with self._lock:
            session = self.sessions.get(key)
            if session is None:
                system_prompt = get_system_prompt(
                    "chat_assistant",
                    language_name=LANGUAGE_NAMES.get(lang, "English"),
                    context=context,
                )
                session = ChatSession(system_prompt, history)
                self.sessions[key] = session
            return session

    async def get_response(
        self,
        prompt: str,
        history: List[ChatMessage],
        context: str,
        lang: str
    ) -> str:
        """
        Send one user turn and return the assistant's reply.

        history only seeds a conversation the first time its key is seen.
        A failed turn is not recorded in the conversation.
        """
        session = self._get_session(history, context, lang)
        user_message = {"role": "user", "content": prompt}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=session.messages + [user_message],
                temperature=0.7,
            )
            reply = response.choices[0].message.content
        except Exception as e:
            print(f"❌ Error getting response from chat model: {e}")
            return CONNECTION_ERROR_REPLY

        if not reply:
            return EMPTY_REPLY

        session.messages.append(user_message)
        session.messages.append({"role": "assistant", "content": reply})
        return reply

    def clear(self):
        with self._lock:
            self.sessions.clear()


# Singleton instance
chat_service = ChatService()
