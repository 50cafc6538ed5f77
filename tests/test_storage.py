import json
import threading

from commonlib.storage import ListStore


def test_save_creates_rotating_backups(tmp_path):
    target = tmp_path / "products.json"
    store = ListStore(target, backups=2)

    store.save([{"id": "1"}])
    store.save([{"id": "2"}])
    store.save([{"id": "3"}])

    assert json.loads(target.read_text(encoding="utf-8")) == [{"id": "3"}]
    assert json.loads((tmp_path / "products.json.bak1").read_text(encoding="utf-8")) == [{"id": "2"}]
    assert json.loads((tmp_path / "products.json.bak2").read_text(encoding="utf-8")) == [{"id": "1"}]
    assert not (tmp_path / "products.json.bak3").exists()


def test_load_recovers_from_backup(tmp_path, caplog):
    target = tmp_path / "products.json"
    store = ListStore(target, backups=2, label="product catalog")
    store.save([{"id": "1", "title": "Widget"}])
    store.save([{"id": "2", "title": "Gadget"}])

    # Corrupt the primary file to trigger fallback recovery.
    target.write_text("not-json", encoding="utf-8")
    with caplog.at_level("WARNING"):
        assert store.load() == [{"id": "1", "title": "Widget"}]
    assert "Recovered product catalog" in caplog.text


def test_non_list_payload_is_ignored(tmp_path):
    target = tmp_path / "products.json"
    target.write_text('{"bad": true}', encoding="utf-8")
    assert ListStore(target).load() == []


def test_mutate_in_place_and_by_return(tmp_path):
    store = ListStore(tmp_path / "items.json", backups=0)
    store.mutate(lambda records: records.append({"id": "a"}))
    store.mutate(lambda records: records + [{"id": "b"}])
    assert [record["id"] for record in store.load()] == ["a", "b"]
    assert not list(tmp_path.glob("*.tmp"))


def test_concurrent_mutations_are_all_kept(tmp_path):
    store = ListStore(tmp_path / "items.json", backups=2)
    store.save([{"id": "counter", "hits": 0}])

    def bump(records):
        records[0]["hits"] += 1

    threads = [threading.Thread(target=lambda: [store.mutate(bump) for _ in range(10)]) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.load() == [{"id": "counter", "hits": 80}]
    assert not list(tmp_path.glob("*.tmp"))
