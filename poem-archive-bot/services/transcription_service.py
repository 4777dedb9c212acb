#!/usr/bin/env python3
"""
Two-tier handwriting transcription.

OpenAI vision is tried first; Tesseract is the fallback. Either tier counts
only when it returns non-blank text.
"""
import base64
import io
import logging
import os
import time
from dataclasses import dataclass
from typing import Optional

import pytesseract
from openai import OpenAI, OpenAIError
from PIL import Image

from config.settings import (
    OPENAI_MAX_TOKENS,
    OPENAI_MODEL,
    OPENAI_TEMPERATURE,
    TESSDATA_PREFIX,
    TESSERACT_LANGS,
    TESSERACT_OEM,
    TESSERACT_PSM,
)
from prompts.transcription_prompts import TRANSCRIPTION_SYSTEM_PROMPT, TRANSCRIPTION_USER_PROMPT
from utils.text_utils import fix_mojibake, is_usable_text

log = logging.getLogger(__name__)


class TranscriptionEmptyError(Exception):
    """Neither engine produced usable text."""


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    engine: str
    elapsed_ms: float = 0.0


class TranscriptionService:
    """Primary OpenAI transcription with a Tesseract fallback."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[OpenAI] = None, model: str = OPENAI_MODEL):
        self.model = model
        if client is not None:
            self.client = client
        elif api_key:
            self.client = OpenAI(api_key=api_key)
        else:
            self.client = None
            log.info("⚠️  No OpenAI API key configured; Tesseract only")

    def transcribe_with_openai(self, image_bytes: bytes) -> Optional[str]:
        """Primary engine. Returns None when unavailable or the response is malformed."""
        if self.client is None:
            return None

        data_url = "data:image/jpeg;base64," + base64.b64encode(image_bytes).decode("ascii")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": TRANSCRIPTION_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": TRANSCRIPTION_USER_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    },
                ],
                max_tokens=OPENAI_MAX_TOKENS,
                temperature=OPENAI_TEMPERATURE,
            )
        except OpenAIError as e:
            log.info(f"⚠️  OpenAI API error (using fallback): {e}")
            return None

        try:
            return response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            log.info("⚠️  OpenAI returned a malformed response (using fallback)")
            return None

    def transcribe_with_tesseract(self, image_bytes: bytes) -> Optional[str]:
        """Fallback engine with the explicit language list."""
        env = os.environ.copy()
        if TESSDATA_PREFIX:
            env["TESSDATA_PREFIX"] = TESSDATA_PREFIX
        config = f"--psm {TESSERACT_PSM} --oem {TESSERACT_OEM}"

        try:
            with Image.open(io.BytesIO(image_bytes)) as pil_image:
                try:
                    return pytesseract.image_to_string(pil_image, lang=TESSERACT_LANGS, config=config, env=env)
                except TypeError:
                    # Some pytesseract versions do not accept env kwarg
                    return pytesseract.image_to_string(pil_image, lang=TESSERACT_LANGS, config=config)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            log.info(f"⚠️  Tesseract failed: {e}")
            return None

    def transcribe(self, image_bytes: bytes) -> TranscriptionResult:
        """
        Transcribe a normalized image.

        Raises:
            TranscriptionEmptyError: If both engines return blank or nothing.
        """
        start_time = time.perf_counter()

        text = self.transcribe_with_openai(image_bytes)
        engine = "openai"
        if not is_usable_text(text):
            log.info("↪️ Falling back to Tesseract")
            text = self.transcribe_with_tesseract(image_bytes)
            engine = "tesseract"

        elapsed_ms = (time.perf_counter() - start_time) * 1000.0

        if not is_usable_text(text):
            raise TranscriptionEmptyError("Could not extract text from image")

        text = fix_mojibake(text).strip("\n")
        log.info(f"✅ {engine} transcription ({len(text)} chars, {elapsed_ms:.0f} ms)")
        return TranscriptionResult(text=text, engine=engine, elapsed_ms=elapsed_ms)


def get_transcription_service(api_key: Optional[str]) -> TranscriptionService:
    """Get transcription service instance."""
    return TranscriptionService(api_key=api_key)
