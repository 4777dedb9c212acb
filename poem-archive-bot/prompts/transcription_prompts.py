#!/usr/bin/env python3
"""
Prompt templates for handwriting transcription.
"""

TRANSCRIPTION_SYSTEM_PROMPT = """
You are an expert at transcribing Spanish handwritten poetry. Extract the text from the image and return ONLY the transcribed text, with no additional commentary.

Rules:
- Preserve the original formatting, line breaks, and structure of the poem
- Use Spanish characters properly (á, é, í, ó, ú, ñ, Á, É, Í, Ó, Ú, Ñ)
- If you are uncertain about a word, make your best guess based on context
- Do not add any intro, outro, or explanation
- Return ONLY the poem text
""".strip()

TRANSCRIPTION_USER_PROMPT = "Transcribe this Spanish handwritten poem. Return only the text, preserving the original formatting."
