"""DeepAI adapter covering text and image generation."""

from typing import Dict

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content, MalformedResponseError


class DeepAIAdapter(BaseAdapter):
    """Multimodal adapter: text generator and text-to-image endpoints."""

    name = "deepai"
    base_url = "https://api.deepai.org/api"
    models = ["text-generator", "text2img"]

    def default_headers(self) -> Dict[str, str]:
        return {"api-key": self.api_key}

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.TEXT,
    ) -> Content:
        self.require_modality(modality, Modality.TEXT, Modality.IMAGE)

        data = {"text": prompt}
        data.update({k: str(v) for k, v in options.for_provider(self.name).items()})

        if modality is Modality.TEXT:
            response = await self._request("POST", "/text-generator", data=data)
            return self._extract(self._json(response), lambda p: p["output"])

        response = await self._request("POST", "/text2img", data=data)
        url = self._extract(self._json(response), lambda p: p["output_url"])

        # output_url points at a CDN host; it must not receive the api-key
        download = self.client.build_request("GET", url)
        download.headers.pop("api-key", None)
        image = await self._send(download, follow_redirects=True)
        if not image.content:
            raise MalformedResponseError(
                "deepai returned an empty image", provider=self.name,
                error_code="malformed_response",
            )
        return image.content
