"""
Unit tests for ConversationReferenceStore.
"""

from botbuilder.schema import Activity, ActivityTypes

from relay_bot.services.conversation_references import ConversationReferenceStore


class TestConversationReferenceStore:

    def test_record_and_get(self, make_activity):
        store = ConversationReferenceStore()
        activity = make_activity(user_id="29:user-1", conversation_id="a:conv-1")

        store.record(activity)
        reference = store.get("29:user-1")

        assert reference is not None
        assert reference.conversation.id == "a:conv-1"
        assert reference.service_url == activity.service_url

    def test_alias_resolves_to_same_reference(self, make_activity):
        store = ConversationReferenceStore()
        store.record(make_activity(user_id="29:user-1", aad_object_id="aad-1"))

        assert store.get("aad-1") is store.get("29:user-1")
        assert store.list_keys() == {"29:user-1", "aad-1"}

    def test_last_write_wins(self, make_activity):
        store = ConversationReferenceStore()
        store.record(make_activity(user_id="29:user-1", conversation_id="a:old"))
        store.record(make_activity(user_id="29:user-1", conversation_id="a:new"))

        assert store.get("29:user-1").conversation.id == "a:new"
        assert len(store) == 1

    def test_clear_forgets_all_keys(self, make_activity):
        store = ConversationReferenceStore()
        store.record(make_activity(user_id="29:user-1", aad_object_id="aad-1"))
        store.record(make_activity(user_id="29:user-2", aad_object_id="aad-2"))

        store.clear()

        for key in ("29:user-1", "aad-1", "29:user-2", "aad-2"):
            assert store.get(key) is None
            assert key not in store
        assert store.list_keys() == set()

    def test_activity_without_sender_is_ignored(self):
        store = ConversationReferenceStore()
        activity = Activity(type=ActivityTypes.message, text="hi")

        assert store.record(activity) is None
        assert len(store) == 0

    def test_stored_reference_is_a_copy(self, make_activity):
        store = ConversationReferenceStore()
        activity = make_activity(user_id="29:user-1", conversation_id="a:conv-1")
        store.record(activity)

        activity.conversation.id = "a:changed"

        assert store.get("29:user-1").conversation.id == "a:conv-1"

    def test_alias_equal_to_user_id_is_not_duplicated(self, make_activity):
        store = ConversationReferenceStore()
        store.record(make_activity(user_id="same-id", aad_object_id="same-id"))

        assert store.list_keys() == {"same-id"}
