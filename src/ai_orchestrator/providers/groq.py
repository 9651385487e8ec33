"""Groq adapter using its OpenAI-compatible chat completions endpoint."""

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content

DEFAULT_MODEL = "llama-3.1-8b-instant"


class GroqAdapter(BaseAdapter):
    """Chat completions through Groq."""

    name = "groq"
    base_url = "https://api.groq.com/openai/v1"
    models = [DEFAULT_MODEL, "llama-3.3-70b-versatile", "mixtral-8x7b-32768"]

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.require_modality(modality, Modality.TEXT)

        messages = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        # Build kwargs to avoid passing None values
        body = {
            "model": options.model or DEFAULT_MODEL,
            "messages": messages,
            "temperature": options.temperature if options.temperature is not None else 0.7,
        }
        if options.max_tokens:
            body["max_tokens"] = options.max_tokens
        if options.top_p is not None:
            body["top_p"] = options.top_p
        body.update(options.for_provider(self.name))

        response = await self._request("POST", "/chat/completions", json=body)
        return self._extract(
            self._json(response), lambda p: p["choices"][0]["message"]["content"]
        )
