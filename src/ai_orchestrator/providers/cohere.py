"""Cohere generate API adapter."""

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content

DEFAULT_MODEL = "command-light"


class CohereAdapter(BaseAdapter):
    """Text generation through Cohere."""

    name = "cohere"
    base_url = "https://api.cohere.ai/v1"
    models = [DEFAULT_MODEL, "command"]

    def default_headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.require_modality(modality, Modality.TEXT)

        body = {
            "prompt": f"{options.system_prompt}\n\n{prompt}" if options.system_prompt else prompt,
            "model": options.model or DEFAULT_MODEL,
            "max_tokens": options.max_tokens or 200,
            "temperature": options.temperature if options.temperature is not None else 0.7,
        }
        if options.top_p is not None:
            body["p"] = options.top_p
        body.update(options.for_provider(self.name))

        response = await self._request("POST", "/generate", json=body)
        return self._extract(self._json(response), lambda p: p["generations"][0]["text"])
