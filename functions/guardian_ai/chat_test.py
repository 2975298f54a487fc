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

import unittest
from unittest.mock import patch

from guardian_ai import chat
from models import prompts
from planner import state as app_state
from shared.types import (
    ChatMessage,
    Goal,
    InstallmentLog,
    InstallmentStatus,
    InstallmentType,
)


def _state_with_missed_payment():
    state = app_state.new_app_state("ada@example.com", "Ada")
    state.goals = [
        Goal(
            id="g1",
            title="Laptop",
            category="tech",
            total_amount=100,
            currency="USD",
            deadline="2026-02-10",
            created_at="2026-01-01T09:00:00+00:00",
            installment_type=InstallmentType.DAILY,
            total_installments=10,
            reminder_time="18:00",
            reminder_day=1,
            installment_logs=[
                InstallmentLog(
                    id="missed-1",
                    due_date="2026-01-14",
                    status=InstallmentStatus.FAILED,
                    amount=0,
                )
            ],
        )
    ]
    return state


class GuardianChatTest(unittest.TestCase):

    def test_greeting(self):
        message = chat.greeting()
        self.assertEqual(message.role, "model")
        self.assertEqual(message.text, prompts.GUARDIAN_GREETING)
        self.assertIsNotNone(message.timestamp)

    def test_build_system_instruction(self):
        instruction = chat.build_system_instruction(_state_with_missed_payment())
        self.assertIn("User Name: Ada", instruction)
        self.assertIn("Active Goals: 1", instruction)
        self.assertIn("Completed Goals: 0", instruction)
        self.assertIn("Total Missed Installments: 1", instruction)
        self.assertIn("+231 772014558/+231 778613786", instruction)

    def test_offline_reply_keywords(self):
        self.assertIn("D & M Smart Services", chat.offline_reply("Who made this app?"))
        self.assertEqual(
            chat.offline_reply("I MISSED a payment"),
            prompts.OFFLINE_ENCOURAGEMENT_RESPONSE,
        )
        self.assertEqual(
            chat.offline_reply("What is a buffer?"), prompts.OFFLINE_DEFAULT_RESPONSE
        )

    @patch("guardian_ai.chat.gemini")
    def test_reply_without_api_key_is_offline(self, mock_gemini):
        mock_gemini.has_api_key.return_value = False
        messages = [ChatMessage(role="user", text="How do I contact the developer?")]

        reply = chat.generate_guardian_reply(_state_with_missed_payment(), messages)

        self.assertIn("adavidlsirleaf2005@gmail.com", reply.text)
        mock_gemini.call_chat.assert_not_called()

    @patch("guardian_ai.chat.gemini")
    def test_reply_from_model(self, mock_gemini):
        mock_gemini.has_api_key.return_value = True
        mock_gemini.call_chat.return_value = "Keep going, Ada."
        messages = [
            chat.greeting(),
            ChatMessage(role="user", text="Hi"),
            ChatMessage(role="model", text="Hello"),
            ChatMessage(role="user", text="Am I on track?"),
        ]

        reply = chat.generate_guardian_reply(
            _state_with_missed_payment(), messages, "key"
        )

        self.assertEqual(reply.role, "model")
        self.assertEqual(reply.text, "Keep going, Ada.")
        sent, instruction = mock_gemini.call_chat.call_args[0]
        # The leading greeting is not sent to the model.
        self.assertEqual([m.text for m in sent], ["Hi", "Hello", "Am I on track?"])
        self.assertIn("Total Missed Installments: 1", instruction)
        self.assertEqual(mock_gemini.call_chat.call_args[1], {"api_key": "key"})

    @patch("guardian_ai.chat.gemini")
    def test_empty_model_reply(self, mock_gemini):
        mock_gemini.has_api_key.return_value = True
        mock_gemini.call_chat.return_value = ""
        reply = chat.generate_guardian_reply(
            _state_with_missed_payment(), [ChatMessage(role="user", text="Hi")], "key"
        )
        self.assertEqual(reply.text, prompts.GUARDIAN_EMPTY_RESPONSE)

    @patch("guardian_ai.chat.gemini")
    def test_model_failure_falls_back_offline(self, mock_gemini):
        mock_gemini.has_api_key.return_value = True
        mock_gemini.call_chat.side_effect = RuntimeError("network down")
        reply = chat.generate_guardian_reply(
            _state_with_missed_payment(),
            [ChatMessage(role="user", text="I failed again")],
            "key",
        )
        self.assertEqual(reply.text, prompts.OFFLINE_ENCOURAGEMENT_RESPONSE)

    def test_conversation_must_end_with_user(self):
        with self.assertRaises(ValueError):
            chat.generate_guardian_reply(
                _state_with_missed_payment(), [chat.greeting()]
            )
        with self.assertRaises(ValueError):
            chat.generate_guardian_reply(_state_with_missed_payment(), [])


if __name__ == "__main__":
    unittest.main()
