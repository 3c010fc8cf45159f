"""
Image transformation pipeline.

Chains the inference models that turn a source photo into styled studio
images: optional background removal and face enhancement, prompt-guided
generation, then optional upscaling of every output.

Dependencies: asyncio, backend.configs, backend.models.job
System role: Processing step executed by the background job processor
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from backend.boundary.db.models.job_model import JobType
from backend.configs.inference import InferenceSettings
from backend.core.exceptions import InferenceError
from backend.models.job import JobSettings, Quality

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Awaitable[None]]

PORTRAIT_PROMPT = (
    "professional studio portrait photography, high-end fashion photography, "
    "studio lighting setup with softbox and key light, clean white or gradient background, "
    "sharp focus on subject, professional color grading, commercial photography quality, "
    "8k resolution, photorealistic, professional headshot style"
)

PET_PORTRAIT_PROMPT = (
    "professional studio portrait photography with pet, high-end pet photography, "
    "studio lighting setup, clean background, both subject and pet in sharp focus, "
    "heartwarming composition, professional color grading, commercial photography quality, "
    "8k resolution, photorealistic, professional pet portrait style"
)

PROMPTS: dict[JobType, str] = {
    JobType.PERSON: PORTRAIT_PROMPT,
    JobType.SOLO_ME: PORTRAIT_PROMPT,
    JobType.PERSON_PET: PET_PORTRAIT_PROMPT,
    JobType.ME_AND_PET: PET_PORTRAIT_PROMPT,
    JobType.OBJECT: (
        "professional product photography, seamless studio backdrop, softbox lighting, "
        "crisp reflections, sharp focus on the product, commercial catalog quality, "
        "8k resolution, photorealistic"
    ),
    JobType.LANDSCAPE: (
        "professional landscape photography, golden hour lighting, rich dynamic range, "
        "balanced composition, vivid but natural colors, 8k resolution, photorealistic"
    ),
    JobType.CUSTOM: (
        "professional photography, studio quality lighting, sharp focus, "
        "professional color grading, 8k resolution, photorealistic"
    ),
}

NEGATIVE_PROMPT = (
    "blurry, low quality, amateur, bad lighting, distorted, "
    "deformed, ugly, bad anatomy, watermark, text, signature, cartoon, painting, "
    "illustration, 3d render, low resolution, pixelated"
)

# Portrait styles get face restoration; other styles have no face to enhance.
FACE_TYPES = frozenset({JobType.PERSON, JobType.PERSON_PET, JobType.SOLO_ME, JobType.ME_AND_PET})

INFERENCE_STEPS: dict[Quality, int] = {
    Quality.DRAFT: 25,
    Quality.STANDARD: 50,
    Quality.PREMIUM: 80,
}

UPSCALE_FACTOR: dict[Quality, int] = {
    Quality.DRAFT: 2,
    Quality.STANDARD: 2,
    Quality.PREMIUM: 4,
}

GUIDANCE_SCALE = 7.5


class InferenceClient(Protocol):
    """Anything that can run one model version and return output URLs."""

    async def run_model(self, version: str, model_input: dict[str, Any]) -> list[str]:
        ...


async def _no_progress(_: int) -> None:
    return None


class ImagePipeline:
    """
    Runs the model chain for one job.

    Progress is reported after each stage through an optional callback;
    the callback is advisory and its failures are the caller's concern.
    """

    def __init__(self, client: InferenceClient, settings: InferenceSettings) -> None:
        self.client = client
        self.settings = settings

    async def run(
        self,
        input_reference: str,
        job_type: JobType,
        options: JobSettings,
        on_progress: ProgressCallback | None = None,
    ) -> list[str]:
        """
        Transform a source image.

        Args:
            input_reference: Source image URL
            job_type: Requested style
            options: Quality, output count and enhancement flags
            on_progress: Awaited with a percentage after each stage

        Returns:
            list[str]: Output image URLs (at least one)

        Raises:
            InferenceError: If any model call fails or nothing is produced
        """
        report = on_progress or _no_progress
        job_type = JobType(job_type)
        image = input_reference

        if options.background_removal:
            image = await self._first(
                self.settings.background_removal_version,
                {"image": image},
                step="background_removal",
            )
        await report(30)

        if options.face_enhancement and job_type in FACE_TYPES:
            image = await self._first(
                self.settings.face_enhancement_version,
                {"img": image, "version": "v1.4", "scale": 2},
                step="face_enhancement",
            )
        await report(60)

        outputs = await self.client.run_model(
            self.settings.generation_version,
            {
                "image": image,
                "prompt": PROMPTS[job_type],
                "negative_prompt": NEGATIVE_PROMPT,
                "num_outputs": options.num_outputs,
                "guidance_scale": GUIDANCE_SCALE,
                "num_inference_steps": INFERENCE_STEPS[options.quality],
                "scheduler": "K_EULER",
                "refine": "expert_ensemble_refiner",
                "high_noise_frac": 0.8,
            },
        )
        if not outputs:
            raise InferenceError("Image generation returned no outputs", details={"step": "generation"})
        await report(80)

        if options.upscale:
            scale = UPSCALE_FACTOR[options.quality]
            outputs = list(
                await asyncio.gather(
                    *(
                        self._first(
                            self.settings.upscale_version,
                            {"image": url, "scale": scale, "face_enhance": job_type in FACE_TYPES},
                            step="upscale",
                        )
                        for url in outputs
                    )
                )
            )
        await report(90)

        logger.info(
            "Image pipeline finished",
            extra={"job_type": job_type.value, "outputs": len(outputs)},
        )
        return outputs

    async def _first(self, version: str, model_input: dict[str, Any], step: str) -> str:
        outputs = await self.client.run_model(version, model_input)
        if not outputs:
            raise InferenceError(f"Inference step {step} returned no output", details={"step": step})
        return outputs[0]
