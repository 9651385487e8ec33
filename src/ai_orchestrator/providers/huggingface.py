"""HuggingFace Inference API adapter."""

from typing import List, Optional

import httpx

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content

DEFAULT_MODELS = ["microsoft/DialoGPT-medium", "gpt2", "EleutherAI/gpt-neo-2.7B"]


class HuggingFaceAdapter(BaseAdapter):
    """Text generation through hosted HuggingFace models."""

    name = "huggingface"
    base_url = "https://api-inference.huggingface.co/models"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        models: Optional[List[str]] = None,
    ):
        super().__init__(api_key, timeout=timeout, client=client, base_url=base_url)
        self.models = list(models or DEFAULT_MODELS)

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.require_modality(modality, Modality.TEXT)
        model = options.model or self.models[0]

        parameters = {
            "max_new_tokens": options.max_tokens or 200,
            "temperature": options.temperature if options.temperature is not None else 0.7,
            "return_full_text": False,
        }
        if options.top_p is not None:
            parameters["top_p"] = options.top_p
        parameters.update(options.for_provider(self.name))

        inputs = f"{options.system_prompt}\n\n{prompt}" if options.system_prompt else prompt
        response = await self._request(
            "POST", f"/{model}", json={"inputs": inputs, "parameters": parameters}
        )
        payload = self._json(response)

        # The API answers with a list for most pipelines and a bare object for some
        if isinstance(payload, list):
            return self._extract(payload, lambda p: p[0]["generated_text"])
        return self._extract(payload, lambda p: p["generated_text"])
