"""Stability AI image generation adapter."""

from ai_orchestrator.models import GenerationOptions, Modality

from .base import BaseAdapter, Content, MalformedResponseError


class StabilityAdapter(BaseAdapter):
    """Image generation through the Stable Image core endpoint."""

    name = "stability"
    base_url = "https://api.stability.ai/v2beta"
    models = ["stable-image-core"]

    async def invoke(
        self,
        prompt: str,
        options: GenerationOptions,
        modality: Modality = Modality.IMAGE,
    ) -> Content:
        self.require_modality(modality, Modality.IMAGE)

        data = {"prompt": prompt, "output_format": "png"}
        if options.system_prompt:
            data["negative_prompt"] = options.system_prompt
        data.update({k: str(v) for k, v in options.for_provider(self.name).items()})

        response = await self._request(
            "POST",
            "/stable-image/generate/core",
            headers={"Accept": "image/*"},
            data=data,
            # The endpoint requires multipart/form-data even without a file
            files={"none": ""},
        )
        if not response.content:
            raise MalformedResponseError(
                "stability returned an empty image", provider=self.name,
                error_code="malformed_response",
            )
        return response.content
