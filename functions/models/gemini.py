# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import time
import logging
from google import genai
from google.genai import types
from models import api_config
from shared.types import ChatMessage
from typing import List

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
CHAT_MAX_OUTPUT_TOKENS = 1024
CHAT_TEMPERATURE = 0.7


class GeminiInvalidResponseException(Exception):
    pass


def _resolve_api_key(api_key: str | None) -> str | None:
    if not api_key:
        return api_config.DEFAULT_API_KEY
    logger.info(API_KEY_LOGGING_MESSAGE)
    return api_key


def has_api_key(api_key: str | None = None) -> bool:
    return bool(api_key or api_config.DEFAULT_API_KEY)


def call_chat(
    messages: List[ChatMessage],
    system_instruction: str,
    model=api_config.CHAT_MODEL,
    api_key: str | None = None,
) -> str:
    """Calls Gemini with a multi-turn conversation and a system instruction."""
    client = genai.Client(api_key=_resolve_api_key(api_key))
    contents = [
        types.Content(role=message.role, parts=[types.Part(text=message.text)])
        for message in messages
    ]

    start_time = time.time()
    response = client.models.generate_content(
        model=model,
        contents=contents,
        config=types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=CHAT_TEMPERATURE,
            max_output_tokens=CHAT_MAX_OUTPUT_TOKENS,
        ),
    )
    logger.info("Gemini chat call took: %.2fs", time.time() - start_time)
    return response.text or ""


def call_tts(
    prompt: str,
    voice_name: str = api_config.TTS_VOICE,
    model=api_config.TTS_MODEL,
    api_key: str | None = None,
) -> bytes:
    """
    Calls the Gemini speech model.

    Returns:
        bytes: Raw 16-bit little-endian mono PCM at api_config.TTS_SAMPLE_RATE.
    """
    client = genai.Client(api_key=_resolve_api_key(api_key))

    start_time = time.time()
    response = client.models.generate_content(
        model=model,
        contents=prompt,
        config=types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=voice_name,
                    )
                )
            ),
        ),
    )
    logger.info("Gemini TTS call took: %.2fs", time.time() - start_time)

    try:
        audio = response.candidates[0].content.parts[0].inline_data.data
    except (AttributeError, IndexError, TypeError):
        audio = None
    if not audio:
        raise GeminiInvalidResponseException("No audio data in response")
    return audio
