import unittest

from voice_relay.models.conversation import (
    ConversationSession,
    PatientInfo,
    Persona,
    Role,
    SessionStore,
    UpstreamState,
)


class TestSessionStore(unittest.TestCase):

    def setUp(self):
        self.store = SessionStore()
        self.session = ConversationSession(
            id="test-conversation-id", agent_name="Emma", agent_gender="female", language="en"
        )

    def test_add_session(self):
        self.store.add(self.session)
        self.assertIn(self.session.id, self.store)
        self.assertIs(self.store.get(self.session.id), self.session)
        self.assertEqual(len(self.store), 1)

    def test_add_duplicate_session(self):
        self.store.add(self.session)
        with self.assertRaises(ValueError):
            self.store.add(self.session)

    def test_remove_session(self):
        self.store.add(self.session)
        self.assertIs(self.store.remove(self.session.id), self.session)
        self.assertNotIn(self.session.id, self.store)
        self.assertIsNone(self.store.remove(self.session.id))

    def test_get_nonexistent_session(self):
        self.assertIsNone(self.store.get("nonexistent-id"))


class TestConversationSession(unittest.TestCase):

    def setUp(self):
        self.session = ConversationSession(
            id="conv-1", agent_name="Emma", agent_gender="female", language="en"
        )

    def test_defaults(self):
        self.assertEqual(self.session.upstream_state, UpstreamState.CONNECTING)
        self.assertEqual(self.session.messages, [])
        self.assertIsNone(self.session.patient_id)
        self.assertIsNotNone(self.session.started_at.tzinfo)

    def test_recent_messages(self):
        for i in range(8):
            self.session.add_message(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"m{i}")
        recent = self.session.recent_messages(5)
        self.assertEqual([m.content for m in recent], ["m3", "m4", "m5", "m6", "m7"])
        self.assertEqual(len(self.session.messages), 8)
        self.assertEqual(self.session.recent_messages(0), [])

    def test_apply_persona(self):
        self.session.apply_persona(Persona(name="James", gender="male"))
        self.assertEqual(self.session.agent_name, "James")
        self.assertEqual(self.session.agent_gender, "male")


class TestPatientInfo(unittest.TestCase):

    def test_aliases(self):
        info = PatientInfo.model_validate(
            {"fullName": "Jane", "interestedTreatments": ["veneers"]}
        )
        self.assertEqual(info.full_name, "Jane")
        self.assertEqual(info.interested_treatments, ["veneers"])

    def test_from_partial_rejects_fields_individually(self):
        info, rejected = PatientInfo.from_partial(
            {"fullName": "Ali Veli", "phone": "+905551112233", "age": "thirty", "unknown": 1}
        )
        self.assertEqual(info.full_name, "Ali Veli")
        self.assertEqual(info.phone, "+905551112233")
        self.assertIsNone(info.age)
        self.assertEqual(rejected, ["age"])

    def test_merge_keeps_existing_fields(self):
        current = PatientInfo(full_name="Jane", city="London")
        merged = current.merge(PatientInfo(city="Manchester", phone="123"))
        self.assertEqual(merged.full_name, "Jane")
        self.assertEqual(merged.city, "Manchester")
        self.assertEqual(merged.phone, "123")
        # merge returns a copy
        self.assertEqual(current.city, "London")

    def test_has_identity(self):
        self.assertFalse(PatientInfo(city="London").has_identity)
        self.assertTrue(PatientInfo(phone="123").has_identity)
        self.assertTrue(PatientInfo(full_name="Jane").has_identity)

    def test_to_record_uses_column_names(self):
        record = PatientInfo(full_name="Jane", interested_treatments=["fue"]).to_record()
        self.assertEqual(record["full_name"], "Jane")
        self.assertEqual(record["interested_treatments"], ["fue"])


if __name__ == "__main__":
    unittest.main()
