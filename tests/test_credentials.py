import json

from data.credentials import TOKEN_SLOT, USER_SLOT, CredentialStore, FileSlot, MappingSlot
from data.demo_state import DemoModeState


class TestCredentialStore:
    def test_absent_credential_is_none(self):
        assert CredentialStore(MappingSlot()).get() is None

    def test_blank_token_reads_as_none(self):
        assert CredentialStore(MappingSlot({TOKEN_SLOT: "   "})).get() is None

    def test_set_then_get(self):
        store = CredentialStore(MappingSlot())
        store.set("abc123", user_data={"role": "parent"})
        assert store.get() == "abc123"

    def test_invalidate_clears_token_and_user_data(self):
        backing = {}
        store = CredentialStore(MappingSlot(backing))
        store.set("abc123", user_data={"role": "parent"})
        store.invalidate()
        assert store.get() is None
        assert TOKEN_SLOT not in backing
        assert USER_SLOT not in backing

    def test_reads_through_to_storage_every_call(self):
        backing = {}
        store = CredentialStore(MappingSlot(backing))
        assert store.get() is None
        backing[TOKEN_SLOT] = "logged-in-elsewhere"
        assert store.get() == "logged-in-elsewhere"


class TestFileSlot:
    def test_missing_file_is_empty(self, tmp_path):
        assert CredentialStore(FileSlot(str(tmp_path / "nope.json"))).get() is None

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "state" / "session.json")
        CredentialStore(FileSlot(path)).set("tok")
        assert CredentialStore(FileSlot(path)).get() == "tok"

    def test_out_of_band_write_is_observed(self, tmp_path):
        path = tmp_path / "session.json"
        store = CredentialStore(FileSlot(str(path)))
        store.set("first")
        path.write_text(json.dumps({TOKEN_SLOT: "second"}))
        assert store.get() == "second"

    def test_corrupt_file_reads_as_no_credential(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json")
        assert CredentialStore(FileSlot(str(path))).get() is None

    def test_clear_keeps_other_slots(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(json.dumps({TOKEN_SLOT: "tok", "theme": "dark"}))
        CredentialStore(FileSlot(str(path))).clear()
        assert json.loads(path.read_text()) == {"theme": "dark"}


class TestDemoModeState:
    def test_engage_is_sticky_and_reports_first_flip(self):
        state = DemoModeState()
        assert not state.active
        assert state.engage("first outage") is True
        assert state.engage("second outage") is False
        assert state.active
        assert state.reason == "first outage"

    def test_reset_for_a_new_session(self):
        state = DemoModeState(active=True)
        state.reset()
        assert not state
