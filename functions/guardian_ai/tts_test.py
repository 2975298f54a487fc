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

import io
import unittest
import wave
from unittest.mock import MagicMock, patch

from guardian_ai import tts
from shared.types import AlertType, GuardianAlert


def _alert(alert_id: str, message: str) -> GuardianAlert:
    return GuardianAlert(
        id=alert_id,
        goal_id="g1",
        title="Guardian Alert",
        message=message,
        type=AlertType.REMINDER,
        timestamp=1,
    )


class TtsTest(unittest.TestCase):

    def test_pcm_to_wav_header(self):
        pcm = b"\x00\x01" * 240
        wav_bytes = tts.pcm_to_wav(pcm)
        with wave.open(io.BytesIO(wav_bytes), "rb") as wav_file:
            self.assertEqual(wav_file.getnchannels(), 1)
            self.assertEqual(wav_file.getsampwidth(), 2)
            self.assertEqual(wav_file.getframerate(), 24000)
            self.assertEqual(wav_file.readframes(240), pcm)

    @patch("guardian_ai.tts.gemini")
    def test_synthesize_speech(self, mock_gemini):
        mock_gemini.call_tts.return_value = b"\x00\x00" * 10

        wav_bytes = tts.synthesize_speech("Pay now.", "key")

        self.assertTrue(wav_bytes.startswith(b"RIFF"))
        mock_gemini.call_tts.assert_called_once_with(
            "Say clearly and professionally: Pay now.", api_key="key"
        )

    def test_synthesize_speech_rejects_blank_text(self):
        with self.assertRaises(ValueError):
            tts.synthesize_speech("   ")

    @patch("guardian_ai.tts.synthesize_speech")
    def test_speak_alerts_skips_failures(self, mock_synthesize):
        mock_synthesize.side_effect = [b"RIFF1", RuntimeError("quota"), b"RIFF3"]
        storage = MagicMock()
        alerts = [_alert("a1", "one"), _alert("a2", "two"), _alert("a3", "three")]

        paths = tts.speak_alerts(alerts, storage)

        self.assertEqual(paths, ["speech/a1.wav", "speech/a3.wav"])
        storage.upload_bytes.assert_any_call("speech/a1.wav", b"RIFF1")
        storage.upload_bytes.assert_any_call("speech/a3.wav", b"RIFF3")
        self.assertEqual(storage.upload_bytes.call_count, 2)


if __name__ == "__main__":
    unittest.main()
