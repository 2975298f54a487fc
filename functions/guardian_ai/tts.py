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
"""Spoken versions of guardian messages."""

import io
import logging
import wave
from typing import List

from models import api_config
from models import gemini
from models import prompts
from shared.types import GuardianAlert

logger = logging.getLogger(__name__)

SPEECH_STORAGE_PREFIX = "speech"


def pcm_to_wav(pcm: bytes, sample_rate: int = api_config.TTS_SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def synthesize_speech(text: str, api_key: str | None = None) -> bytes:
    """Returns WAV bytes for the given text."""
    if not text or not text.strip():
        raise ValueError("Text to speak must not be empty.")
    pcm = gemini.call_tts(prompts.TTS_PROMPT.format(text=text), api_key=api_key)
    return pcm_to_wav(pcm)


def speech_path(alert_id: str) -> str:
    return f"{SPEECH_STORAGE_PREFIX}/{alert_id}.wav"


def speak_alerts(
    alerts: List[GuardianAlert], storage, api_key: str | None = None
) -> List[str]:
    """
    Synthesizes each alert message into storage.

    Speech is optional for alerts, so failures are logged and skipped.
    """
    paths = []
    for alert in alerts:
        path = speech_path(alert.id)
        try:
            storage.upload_bytes(path, synthesize_speech(alert.message, api_key))
        except Exception as e:
            logger.warning("Could not synthesize speech for %s: %s", alert.id, e)
            continue
        paths.append(path)
    return paths
