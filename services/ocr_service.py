"""
OCR Service - Handles note page OCR and figure capture.

This service sends each page image to an OpenAI-compatible vision model,
normalizes the transcription and runs the figure pipeline on it. Pages are
processed strictly one after another.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from openai import AuthenticationError, PermissionDeniedError

from core.constants import (
    DEFAULT_OCR_PARAMS,
    OCR_PROMPTS,
    OCR_SYSTEM_INSTRUCTION,
    PAGE_ERROR_TEMPLATE,
)
from core.models import ServicePageResult
from data.blob_store import BlobStore
from utils.image_utils import bytes_to_base64, get_image_dimensions, get_mime_type
from utils.text_utils import normalize_llm_output
from .figure_pipeline import FigureExtractionPipeline, generate_image_id

logger = logging.getLogger(__name__)

# Errors that retrying or skipping a page cannot fix
FATAL_ERRORS = (AuthenticationError, PermissionDeniedError)


def build_ocr_prompt(persona: Optional[str] = None) -> str:
    """
    Build the study-notes OCR prompt.

    Args:
        persona: Optional extra context about the notes' style or subject
    """
    prompt = OCR_PROMPTS['study_notes']
    if persona:
        prompt += f"\n\nAdditional Context/Persona: {persona}"
    return prompt


class OCRService:
    """Service for note OCR with figure capture."""

    def __init__(
        self,
        client,
        blob_store: BlobStore,
        model: str = "ocr",
        figure_config: Optional[Dict] = None,
        max_tokens: int = DEFAULT_OCR_PARAMS['max_tokens'],
        temperature: float = DEFAULT_OCR_PARAMS['temperature'],
        max_retries: int = DEFAULT_OCR_PARAMS['max_retries'],
        retry_delay: float = 1.0,
        key_factory=generate_image_id
    ):
        """
        Initialize OCR service.

        Args:
            client: AsyncOpenAI client instance
            blob_store: Where captured figures are stored
            model: Model name (default: "ocr")
            figure_config: Figure pipeline threshold overrides
            max_retries: Attempts per page before giving up
            retry_delay: Base delay in seconds, doubled after each failure
        """
        self.client = client
        self.blob_store = blob_store
        self.model = model
        self.figure_config = figure_config or {}
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.key_factory = key_factory

    async def transcribe(
        self,
        img_b64: str,
        prompt: str,
        mime_type: str = "image/png"
    ) -> str:
        """
        Transcribe one page image, retrying transient failures.

        Raises:
            The last error once all attempts are exhausted, or immediately
            for authentication/permission errors.
        """
        for attempt in range(self.max_retries):
            try:
                return await self._call_model(img_b64, prompt, mime_type)
            except FATAL_ERRORS:
                raise
            except Exception as e:
                if attempt == self.max_retries - 1:
                    raise
                delay = self.retry_delay * (2 ** attempt)
                logger.warning(
                    "OCR attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt + 1, self.max_retries, e, delay
                )
                await asyncio.sleep(delay)

        raise RuntimeError("Max retries exceeded")

    async def _call_model(self, img_b64: str, prompt: str, mime_type: str) -> str:
        """Call the chat completions API with image and prompt."""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": OCR_SYSTEM_INSTRUCTION},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{img_b64}"}}
                    ]
                }
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
        return response.choices[0].message.content or ""

    async def process_page(
        self,
        image_bytes: bytes,
        page_num: int = 1,
        persona: Optional[str] = None
    ) -> ServicePageResult:
        """
        OCR one page and capture its figures.

        A page that fails is returned as an error block in the markdown so
        the rest of the document can still be processed.

        Args:
            image_bytes: Encoded page image
            page_num: 1-indexed page number
            persona: Optional prompt context

        Returns:
            ServicePageResult for the page
        """
        try:
            img_width, img_height = get_image_dimensions(image_bytes)

            raw = await self.transcribe(
                bytes_to_base64(image_bytes),
                build_ocr_prompt(persona),
                mime_type=get_mime_type(image_bytes)
            )
            text = normalize_llm_output(raw)

            # Fresh pipeline per page: duplicate hashes never leak across images
            pipeline = FigureExtractionPipeline(
                self.blob_store,
                config=self.figure_config,
                key_factory=self.key_factory
            )
            # Cropping and hashing are CPU-bound; keep them off the event loop
            extraction = await asyncio.to_thread(
                pipeline.process, text, image_bytes, (img_width, img_height)
            )

        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.exception("Error processing page %d", page_num)
            message = str(e) or "Unknown error"
            return ServicePageResult(
                page_num=page_num,
                markdown=PAGE_ERROR_TEMPLATE.format(message=message),
                error=message
            )

        return ServicePageResult(
            page_num=page_num,
            markdown=extraction.text,
            figures=extraction.figures,
            stats=extraction.stats,
            image_width=img_width,
            image_height=img_height
        )

    async def process_document(
        self,
        pages: Iterable[bytes],
        persona: Optional[str] = None
    ) -> List[ServicePageResult]:
        """
        Process pages sequentially, awaiting each page before the next.

        Args:
            pages: Encoded page images in reading order
            persona: Optional prompt context

        Returns:
            One ServicePageResult per page
        """
        results = []
        for page_num, image_bytes in enumerate(pages, start=1):
            logger.info("Processing page %d", page_num)
            results.append(await self.process_page(image_bytes, page_num, persona))
        return results
