import json

import pytest

from lunchbell.domain.errors import PersistenceWriteError
from lunchbell.domain.models import SLACK_ENDPOINT, Channel
from lunchbell.services.displays import DisplayRegistry
from lunchbell.services.registry import SubscriberRegistry
from lunchbell.services.storage import JsonFileStore
from tests.helpers import FakeBindingProvider

pytestmark = pytest.mark.asyncio


async def test_missing_file_loads_empty(tmp_path):
    assert JsonFileStore(tmp_path / "users.json").load() == {}


async def test_save_then_load(tmp_path):
    path = tmp_path / "users.json"
    store = JsonFileStore(path, indent=3)
    snapshot = {"jdoe": {"notifications": {"sms": "B1"}, "team": ""}}

    await store.save(snapshot)

    assert store.load() == snapshot
    assert path.read_text(encoding="utf-8") == json.dumps(snapshot, indent=3)


async def test_save_replaces_whole_file_and_leaves_no_temp_files(tmp_path):
    path = tmp_path / "displays.json"
    store = JsonFileStore(path, indent=2)

    await store.save({"Kitchen": {}, "Lobby": {}})
    await store.save({"Lobby": {}})

    assert json.loads(path.read_text(encoding="utf-8")) == {"Lobby": {}}
    assert [p.name for p in tmp_path.iterdir()] == ["displays.json"]


async def test_save_creates_missing_directory(tmp_path):
    store = JsonFileStore(tmp_path / "data" / "users.json")

    await store.save({})

    assert (tmp_path / "data" / "users.json").exists()


@pytest.mark.parametrize("content", ["", '{"jdoe": ', "[1, 2]"])
async def test_unreadable_snapshot_starts_empty_and_is_set_aside(tmp_path, caplog, content):
    path = tmp_path / "users.json"
    path.write_text(content, encoding="utf-8")

    assert JsonFileStore(path).load() == {}

    assert not path.exists()
    assert (tmp_path / "users.json.corrupt").read_text(encoding="utf-8") == content
    assert "Unreadable snapshot" in caplog.text


async def test_registries_start_from_corrupt_files(tmp_path):
    (tmp_path / "users.json").write_text("", encoding="utf-8")
    (tmp_path / "displays.json").write_text("not json", encoding="utf-8")

    registry = SubscriberRegistry(JsonFileStore(tmp_path / "users.json"), FakeBindingProvider())
    displays = DisplayRegistry(JsonFileStore(tmp_path / "displays.json", indent=2))
    await registry.register("jdoe", [Channel.SLACK], "+1555")

    assert len(displays) == 0
    assert json.loads((tmp_path / "users.json").read_text(encoding="utf-8")) == {
        "jdoe": {"notifications": {"slack": SLACK_ENDPOINT}, "team": ""}
    }


async def test_write_error_becomes_persistence_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonFileStore(blocker / "users.json")

    with pytest.raises(PersistenceWriteError):
        await store.save({"a": {}})
