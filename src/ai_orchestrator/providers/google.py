"""Google AI Studio (Gemini) adapter."""

from typing import Dict

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content

DEFAULT_MODEL = "gemini-pro"


class GoogleAIAdapter(BaseAdapter):
    """Text generation through the Generative Language API.

    Authentication uses the ``key`` query parameter rather than a bearer
    header.
    """

    name = "googleai"
    base_url = "https://generativelanguage.googleapis.com/v1beta"
    models = [DEFAULT_MODEL]

    def default_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.require_modality(modality, Modality.TEXT)

        generation_config = {
            "temperature": options.temperature if options.temperature is not None else 0.7,
            "maxOutputTokens": options.max_tokens or 200,
        }
        if options.top_p is not None:
            generation_config["topP"] = options.top_p

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if options.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}
        body.update(options.for_provider(self.name))

        model = options.model or DEFAULT_MODEL
        response = await self._request(
            "POST",
            f"/models/{model}:generateContent",
            params={"key": self.api_key},
            json=body,
        )
        return self._extract(
            self._json(response),
            lambda p: p["candidates"][0]["content"]["parts"][0]["text"],
        )
