import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient

from backend import worker
from backend.app import create_app
from backend.config import Settings
from backend.db import InMemoryDbClient
from backend.dependencies import (
    get_clock,
    get_db_client,
    get_session_cache,
    get_storage_client,
)
from backend.sessions import InMemorySessionCache
from backend.storage import InMemoryStorageClient

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
EMAIL = "ada@example.com"

GOAL_DRAFT = {
    "title": "New Laptop",
    "total_amount": 300,
    "deadline": "2026-02-15",
    "category": "tech",
    "use_buffer": False,
}


class BackendApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.sessions = InMemorySessionCache()
        self.storage = InMemoryStorageClient()
        self.now = FIXED_NOW

        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        app.dependency_overrides[get_session_cache] = lambda: self.sessions
        app.dependency_overrides[get_storage_client] = lambda: self.storage
        app.dependency_overrides[get_clock] = lambda: (lambda: self.now)
        self.client = TestClient(app)

    def register(self, email=EMAIL, passcode="1234", device="phone"):
        return self.client.post(
            "/api/register",
            json={"email": email, "passcode": passcode, "name": "Ada"},
            headers={"X-Device-Id": device},
        )

    def create_goal(self, **overrides):
        response = self.client.post(f"/api/goals/{EMAIL}", json={**GOAL_DRAFT, **overrides})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["goal"]


class AccountApiTests(BackendApiTestCase):
    def test_register_and_duplicate(self):
        response = self.register()
        self.assertEqual(response.status_code, 201)
        state = response.json()["state"]
        self.assertEqual(state["currentUser"]["email"], EMAIL)
        self.assertEqual(state["currentUser"]["currency"], "USD")
        self.assertEqual(self.sessions.get_active("phone"), EMAIL)

        self.assertEqual(self.register().status_code, 409)

    def test_register_rejects_empty_fields(self):
        response = self.client.post(
            "/api/register", json={"email": EMAIL, "passcode": "", "name": "Ada"}
        )
        self.assertEqual(response.status_code, 422)

    def test_passcode_is_not_stored_in_plain_text(self):
        self.register()
        self.assertNotEqual(self.db.get_user(EMAIL).passcode_hash, "1234")

    def test_login(self):
        self.register()
        ok = self.client.post(
            "/api/login",
            json={"email": EMAIL, "passcode": "1234"},
            headers={"X-Device-Id": "tablet"},
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(self.sessions.get_active("tablet"), EMAIL)

        bad = self.client.post("/api/login", json={"email": EMAIL, "passcode": "9999"})
        self.assertEqual(bad.status_code, 401)

    def test_passcode_only_login_uses_device_session(self):
        self.register(device="phone")

        ok = self.client.post(
            "/api/login/passcode", json={"passcode": "1234"}, headers={"X-Device-Id": "phone"}
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["state"]["currentUser"]["email"], EMAIL)

        other_device = self.client.post(
            "/api/login/passcode", json={"passcode": "1234"}, headers={"X-Device-Id": "laptop"}
        )
        self.assertEqual(other_device.status_code, 401)

    def test_logout_clears_device_session(self):
        self.register(device="phone")
        response = self.client.post("/api/logout", headers={"X-Device-Id": "phone"})
        self.assertEqual(response.json(), {"status": "ok"})
        self.assertIsNone(self.sessions.get_active("phone"))

        locked = self.client.post(
            "/api/login/passcode", json={"passcode": "1234"}, headers={"X-Device-Id": "phone"}
        )
        self.assertEqual(locked.status_code, 401)

    @patch("backend.routes.get_settings")
    def test_master_passcode_creates_master_account(self, mock_settings):
        mock_settings.return_value = Settings(master_passcode="2007")
        response = self.client.post(
            "/api/login/passcode", json={"passcode": "2007"}, headers={"X-Device-Id": "kiosk"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["state"]["currentUser"]["email"], "admin@dm-smart.com"
        )
        self.assertEqual(self.sessions.get_active("kiosk"), "admin@dm-smart.com")

    def test_master_passcode_disabled_by_default(self):
        response = self.client.post("/api/login/passcode", json={"passcode": "2007"})
        self.assertEqual(response.status_code, 401)


class StateApiTests(BackendApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    def test_get_and_sync_state(self):
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        state["hasSeenOnboarding"] = True

        response = self.client.put(f"/api/state/{EMAIL}", json={"state": state})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.client.get(f"/api/state/{EMAIL}").json()["state"]["hasSeenOnboarding"])

    def test_sync_rejects_foreign_state(self):
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        response = self.client.put("/api/state/eve@example.com", json={"state": state})
        self.assertEqual(response.status_code, 400)

    def test_sync_rejects_unschedulable_goal(self):
        self.create_goal()
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        state["goals"][0]["reminderTime"] = "9:00"

        response = self.client.put(f"/api/state/{EMAIL}", json={"state": state})
        self.assertEqual(response.status_code, 400)
        stored = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        self.assertEqual(stored["goals"][0]["reminderTime"], "18:00")

    def test_unknown_user(self):
        self.assertEqual(self.client.get("/api/state/nobody@example.com").status_code, 404)

    def test_onboarding(self):
        response = self.client.post(f"/api/onboarding/{EMAIL}")
        self.assertTrue(response.json()["state"]["hasSeenOnboarding"])

    def test_add_category(self):
        response = self.client.post(
            f"/api/categories/{EMAIL}", json={"label": "Wedding", "icon": "💍"}
        )
        self.assertEqual(response.status_code, 201)
        [category] = response.json()["state"]["customCategories"]
        self.assertEqual(category["label"], "Wedding")
        self.assertTrue(category["id"].startswith("custom-"))

    def test_update_profile(self):
        response = self.client.put(
            f"/api/profile/{EMAIL}", json={"name": "Ada L", "currency": "LRD"}
        )
        self.assertEqual(response.status_code, 200)
        profile = response.json()["state"]["currentUser"]
        self.assertEqual(profile["name"], "Ada L")
        self.assertEqual(profile["currency"], "LRD")
        self.assertIn("dicebear", profile["avatar"])

        bad = self.client.put(f"/api/profile/{EMAIL}", json={"name": "Ada", "currency": "XYZ"})
        self.assertEqual(bad.status_code, 400)

    def test_upload_avatar(self):
        response = self.client.post(
            f"/api/profile/{EMAIL}/avatar",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
        )
        self.assertEqual(response.status_code, 200)
        path = response.json()["avatar"]
        self.assertTrue(path.startswith(f"avatars/{EMAIL}/"))
        self.assertEqual(self.storage.stored_objects[path], b"\x89PNG")
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        self.assertEqual(state["currentUser"]["avatar"], path)

    def test_upload_avatar_requires_image(self):
        response = self.client.post(
            f"/api/profile/{EMAIL}/avatar",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)


class GoalApiTests(BackendApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    def test_preview(self):
        response = self.client.post("/api/goals/preview", json=GOAL_DRAFT)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"total_periods": 31, "period_amount": 10, "total_calculated": 310},
        )

    def test_preview_rejects_past_deadline(self):
        response = self.client.post(
            "/api/goals/preview", json={**GOAL_DRAFT, "deadline": "2026-01-01"}
        )
        self.assertEqual(response.status_code, 400)

    def test_create_goal(self):
        goal = self.create_goal()
        self.assertEqual(goal["totalInstallments"], 31)
        self.assertEqual(goal["installmentAmount"], 10)
        self.assertEqual(goal["status"], "active")
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        self.assertEqual([g["id"] for g in state["goals"]], [goal["id"]])

    def test_create_goal_for_unknown_user(self):
        response = self.client.post("/api/goals/nobody@example.com", json=GOAL_DRAFT)
        self.assertEqual(response.status_code, 404)

    def test_pay_until_complete(self):
        goal = self.create_goal(total_amount=20, deadline="2026-01-17")
        pay_url = f"/api/goals/{EMAIL}/{goal['id']}/pay"

        first = self.client.post(pay_url)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["goal"]["paidAmount"], 10)

        second = self.client.post(pay_url)
        self.assertEqual(second.json()["goal"]["status"], "completed")

        # Completed goals leave the active list.
        self.assertEqual(self.client.post(pay_url).status_code, 404)
        history = self.client.get(f"/api/history/{EMAIL}").json()
        self.assertEqual([g["id"] for g in history["completed"]], [goal["id"]])
        self.assertEqual(history["failed"], [])

    def test_pay_unknown_goal(self):
        response = self.client.post(f"/api/goals/{EMAIL}/missing/pay")
        self.assertEqual(response.status_code, 404)

    def test_dashboard(self):
        self.create_goal()
        self.create_goal(title="Trip", category="travel")
        response = self.client.get(f"/api/dashboard/{EMAIL}", params={"category": "travel"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["summary"]["activeGoalCount"], 2)
        self.assertEqual(payload["summary"]["totalTarget"], 600)
        self.assertEqual([t["task"] for t in payload["todos"]], ["Deposit for Trip"])
        self.assertEqual(payload["next_due"]["label"], "Due today!")
        self.assertEqual(len(payload["goal_progress"]), 2)
        self.assertEqual(payload["categories"][0]["id"], "savings")


class AlertApiTests(BackendApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()
        self.goal = self.create_goal()
        due_time = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)
        [self.alert] = worker.process_user(self.db, EMAIL, due_time)
        self.now = due_time

    def test_list_alerts(self):
        alerts = self.client.get(f"/api/alerts/{EMAIL}").json()["alerts"]
        self.assertEqual([a["id"] for a in alerts], [self.alert.id])
        self.assertEqual(alerts[0]["type"], "due")

    def test_confirm_alert(self):
        response = self.client.post(
            f"/api/alerts/{EMAIL}/{self.alert.id}/action", json={"action": "confirmed"}
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["state"]["goals"][0]["paidInstallments"], 1)
        self.assertIn("Well done", payload["spoken_message"])
        self.assertEqual(self.client.get(f"/api/alerts/{EMAIL}").json()["alerts"], [])

    def test_wait_alert(self):
        response = self.client.post(
            f"/api/alerts/{EMAIL}/{self.alert.id}/action", json={"action": "waited"}
        )
        self.assertEqual(response.json()["state"]["goals"][0]["reminderTime"], "20:00")

    def test_unknown_alert(self):
        response = self.client.post(
            f"/api/alerts/{EMAIL}/missing/action", json={"action": "dismiss"}
        )
        self.assertEqual(response.status_code, 404)

    def test_action_not_offered_by_alert(self):
        reminder_time = datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc)
        [reminder] = worker.process_user(self.db, EMAIL, reminder_time)
        self.assertEqual([b.action for b in reminder.buttons], ["dismiss"])

        response = self.client.post(
            f"/api/alerts/{EMAIL}/{reminder.id}/action", json={"action": "confirmed"}
        )
        self.assertEqual(response.status_code, 400)
        state = self.client.get(f"/api/state/{EMAIL}").json()["state"]
        self.assertEqual(state["goals"][0]["paidInstallments"], 0)
        alert_ids = [a["id"] for a in self.client.get(f"/api/alerts/{EMAIL}").json()["alerts"]]
        self.assertIn(reminder.id, alert_ids)

    def test_invalid_action(self):
        response = self.client.post(
            f"/api/alerts/{EMAIL}/{self.alert.id}/action", json={"action": "snooze"}
        )
        self.assertEqual(response.status_code, 422)


class GuardianApiTests(BackendApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    def test_greeting(self):
        message = self.client.get("/api/guardian/greeting").json()["message"]
        self.assertEqual(message["role"], "model")
        self.assertIn("Financial Guardian", message["text"])

    @patch("guardian_ai.chat.gemini")
    def test_chat_offline(self, mock_gemini):
        mock_gemini.has_api_key.return_value = False
        response = self.client.post(
            "/api/guardian/chat",
            json={"email": EMAIL, "messages": [{"role": "user", "text": "Who made this?"}]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("D & M Smart Services", response.json()["message"]["text"])

    def test_chat_must_end_with_user(self):
        response = self.client.post(
            "/api/guardian/chat",
            json={"email": EMAIL, "messages": [{"role": "model", "text": "Hello"}]},
        )
        self.assertEqual(response.status_code, 400)

    @patch("backend.routes.tts")
    def test_speak(self, mock_tts):
        mock_tts.synthesize_speech.return_value = b"RIFFdata"
        response = self.client.post("/api/guardian/speak", json={"text": "Pay now."})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "audio/wav")
        self.assertEqual(response.content, b"RIFFdata")

    def test_speak_blank_text(self):
        response = self.client.post("/api/guardian/speak", json={"text": "   "})
        self.assertEqual(response.status_code, 400)

    @patch("backend.routes.tts")
    def test_speak_unavailable(self, mock_tts):
        mock_tts.synthesize_speech.side_effect = RuntimeError("no key")
        response = self.client.post("/api/guardian/speak", json={"text": "Pay now."})
        self.assertEqual(response.status_code, 503)

    def test_sign_url_uses_storage_client(self):
        response = self.client.get("/api/sign-url", params={"path": "speech/a1.wav"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("speech/a1.wav", response.json()["url"])


if __name__ == "__main__":
    unittest.main()
