import pytest

from vps_setup.errors import CorruptStateError, ModeConflictError, ModeRequiredError
from vps_setup.execution.files import HostFiles
from vps_setup.state.mode_store import Mode, ModeStore, resolve_mode


def _store(tmp_path):
    return ModeStore(tmp_path / "vps-setup-mode", tmp_path / "vps-setup-version")


def test_resolve_requires_a_mode_on_first_run():
    with pytest.raises(ModeRequiredError):
        resolve_mode(None, None)


def test_resolve_reuses_persisted_mode_when_none_requested():
    assert resolve_mode(Mode.PRIVATE, None) is Mode.PRIVATE
    assert resolve_mode(None, Mode.PUBLIC) is Mode.PUBLIC
    assert resolve_mode(Mode.PUBLIC, Mode.PUBLIC) is Mode.PUBLIC


def test_resolve_conflict_names_both_modes():
    with pytest.raises(ModeConflictError) as exc:
        resolve_mode(Mode.PUBLIC, Mode.PRIVATE)
    msg = str(exc.value)
    assert "Public" in msg and "Private" in msg
    assert exc.value.stored is Mode.PUBLIC
    assert exc.value.requested is Mode.PRIVATE


def test_commit_writes_once_and_is_noop_for_same_mode(tmp_path):
    store = _store(tmp_path)
    assert store.load() is None

    store.commit(Mode.PRIVATE)
    assert store.mode_file.read_text() == "private\n"
    mtime = store.mode_file.stat().st_mtime_ns

    store.commit(Mode.PRIVATE)
    assert store.load() is Mode.PRIVATE
    assert store.mode_file.stat().st_mtime_ns == mtime


def test_commit_refuses_other_mode_without_mutation(tmp_path):
    store = _store(tmp_path)
    store.commit(Mode.PUBLIC)

    with pytest.raises(ModeConflictError) as exc:
        store.commit(Mode.PRIVATE)
    assert str(store.mode_file) in str(exc.value)
    assert store.load() is Mode.PUBLIC


def test_request_mode_conflict_points_at_mode_record(tmp_path):
    store = _store(tmp_path)
    store.commit(Mode.PUBLIC)
    with pytest.raises(ModeConflictError) as exc:
        store.request_mode(Mode.PRIVATE)
    assert exc.value.record_path == store.mode_file


def test_unknown_token_is_corrupt_state(tmp_path):
    store = _store(tmp_path)
    store.mode_file.write_text("semi-private\n")
    with pytest.raises(CorruptStateError):
        store.load()


def test_version_is_overwritten(tmp_path):
    store = _store(tmp_path)
    store.record_version("1.0.0")
    store.record_version("1.1.0")
    assert store.load_state().version == "1.1.0"


def test_dry_run_store_writes_nothing(tmp_path):
    store = ModeStore(tmp_path / "mode", tmp_path / "version", HostFiles(dry_run=True))
    store.commit(Mode.PUBLIC)
    store.record_version("1.0.0")
    assert not store.mode_file.exists()
    assert not store.version_file.exists()
