"""Unit tests for the asynchronous Database."""

import pytest
from reactivex import Observable

from tandem import ConfigurationError, Database


def single(recorder):
    """The one value an async result emitted."""
    assert recorder.errors == []
    assert recorder.completed
    assert len(recorder.values) == 1
    return recorder.values[0]


@pytest.mark.unit
@pytest.mark.database
def test_async_results_are_observables(async_db):
    """Every async operation returns an observable"""
    # Act & Assert
    assert isinstance(async_db.insert({"name": "item4"}), Observable)
    assert isinstance(async_db.search_equal_to({"name": "item1"}), Observable)
    assert isinstance(async_db.remove({"name": "item4"}), Observable)


@pytest.mark.unit
@pytest.mark.database
def test_async_insert_emits_stored_item(async_db, record):
    """insert emits the item it stored"""
    # Act
    item = single(record(async_db.insert({"name": "item4", "price": 4})))

    # Assert
    assert item["name"] == "item4"
    assert item["id"]
    assert single(record(async_db.search_equal_to({"name": "item4"}))) == item


@pytest.mark.unit
@pytest.mark.database
def test_async_insert_result_survives_later_removal(async_db, record):
    """An insert result still emits the created item after it was removed"""
    # Arrange
    inserted = async_db.insert({"name": "item4"})
    async_db.remove({"name": "item4"})

    # Act
    item = single(record(inserted))

    # Assert
    assert item is not None
    assert item["name"] == "item4"


@pytest.mark.unit
@pytest.mark.database
def test_async_results_give_each_subscriber_a_copy(async_db, record):
    """Changing one subscriber's value does not reach the next subscriber"""
    # Arrange
    inserted = async_db.insert({"name": "item4", "from": ["cn"]})
    first = single(record(inserted))

    # Act
    first["from"].append("us")

    # Assert
    assert single(record(inserted))["from"] == ["cn"]


@pytest.mark.unit
@pytest.mark.database
def test_async_insert_many_emits_list(async_db, record):
    """insert_many emits every inserted item in one list"""
    # Act
    items = single(record(async_db.insert_many({"name": "a"}, {"name": "b"})))

    # Assert
    assert [item["name"] for item in items] == ["a", "b"]


@pytest.mark.unit
@pytest.mark.database
def test_async_insert_many_ignores_records_sharing_an_id(async_db, record):
    """A payload reusing a stored id gives back only the new item"""
    # Act
    items = single(record(async_db.insert_many({"id": "111111", "name": "copy"})))

    # Assert
    assert items == [{"id": "111111", "name": "copy"}]


@pytest.mark.unit
@pytest.mark.database
def test_async_mutation_applies_without_subscriber(async_db, record):
    """The write lands when the method is called"""
    # Act
    async_db.remove({"name": "item2"})

    # Assert
    assert single(record(async_db.search_equal_to({"name": "item2"}))) is None


@pytest.mark.unit
@pytest.mark.database
def test_async_remove_emits_removed_item(async_db, record):
    """remove emits the pre-removal record"""
    # Act
    removed = single(record(async_db.remove({"name": "item2"})))

    # Assert
    assert removed["id"] == "222222"
    assert removed["price"] == 100


@pytest.mark.unit
@pytest.mark.database
def test_async_remove_many(async_db, record):
    """remove_many emits removed items in store order"""
    # Act
    removed = single(
        record(async_db.remove_many({"name": "item3"}, {"name": "item1"}))
    )

    # Assert
    assert [item["name"] for item in removed] == ["item1", "item3"]


@pytest.mark.unit
@pytest.mark.database
def test_async_update_emits_merged_item(async_db, record):
    """update emits the merged item"""
    # Act
    item = single(record(async_db.update({"name": "item2", "price": 1})))

    # Assert
    assert item["id"] == "222222"
    assert item["price"] == 1


@pytest.mark.unit
@pytest.mark.database
def test_async_update_result_ignores_later_updates(async_db, record):
    """An update result emits its own merge, not a later one"""
    # Arrange
    first = async_db.update({"name": "item2", "price": 1})
    async_db.update({"name": "item2", "price": 7})

    # Act
    item = single(record(first))

    # Assert
    assert item["price"] == 1


@pytest.mark.unit
@pytest.mark.database
def test_async_update_without_match_emits_none(async_db, record):
    """An update that matches nothing still emits, with None"""
    # Act & Assert
    assert single(record(async_db.update({"name": "nothing"}))) is None


@pytest.mark.unit
@pytest.mark.database
def test_async_update_many_keeps_slots(async_db, record):
    """update_many emits one slot per payload"""
    # Act
    results = single(
        record(async_db.update_many({"name": "nothing"}, {"name": "item3", "price": 3}))
    )

    # Assert
    assert results[0] is None
    assert results[1]["price"] == 3


@pytest.mark.unit
@pytest.mark.database
@pytest.mark.parametrize("method", ["update_many", "upsert_many"])
def test_async_many_with_same_target_matches_sync(
    async_db, sync_db, record, method
):
    """Payloads hitting the same item give the same slots in both modes"""
    # Arrange
    payloads = ({"name": "item1", "price": 1}, {"name": "item1", "price": 2})

    # Act
    sync_results = getattr(sync_db, method)(*payloads)
    async_results = single(record(getattr(async_db, method)(*payloads)))

    # Assert
    assert [item["price"] for item in async_results] == [1, 2]
    assert async_results == sync_results


@pytest.mark.unit
@pytest.mark.database
def test_async_update_many_without_payloads(async_db, record):
    """update_many with no payloads emits an empty list"""
    # Act & Assert
    assert single(record(async_db.update_many())) == []


@pytest.mark.unit
@pytest.mark.database
def test_async_upsert_inserts_when_missing(async_db, record):
    """upsert emits the inserted item when nothing matched"""
    # Act
    item = single(record(async_db.upsert({"id": "999", "name": "item9"})))

    # Assert
    assert item["name"] == "item9"
    assert item["id"] != "999"


@pytest.mark.unit
@pytest.mark.database
def test_async_upsert_many(async_db, record):
    """upsert_many emits updated and inserted items in payload order"""
    # Act
    items = single(
        record(async_db.upsert_many({"name": "item9"}, {"name": "item1", "price": 0}))
    )

    # Assert
    assert items[0]["name"] == "item9"
    assert items[1]["id"] == "111111"


@pytest.mark.unit
@pytest.mark.database
def test_async_search_many(async_db, record):
    """search_many emits the match list"""
    # Act
    found = single(
        record(async_db.search_many(lambda projection: projection["name"] < "item3"))
    )

    # Assert
    assert [item["name"] for item in found] == ["item1", "item2"]


@pytest.mark.unit
@pytest.mark.database
def test_async_fetch_data_emits_store(async_db, record):
    """fetch_data emits the underlying store"""
    # Act & Assert
    assert single(record(async_db.fetch_data({"name": "raw"}))) is async_db.db_core


@pytest.mark.unit
@pytest.mark.database
def test_async_config_error_raised_on_call(async_store):
    """A missing strategy fails synchronously, not through the observable"""
    # Arrange
    db = Database(async_store)

    # Act & Assert
    with pytest.raises(ConfigurationError):
        db.update({"name": "item1"})


@pytest.mark.unit
@pytest.mark.database
def test_async_database_reports_mutations(async_db, reports, record):
    """An async Database reports to its observer as well"""
    # Arrange
    async_db.add_communicator(reports)

    # Act
    record(async_db.insert({"name": "item4"}))

    # Assert
    assert [name for name, _ in reports] == ["insert"]


@pytest.mark.unit
@pytest.mark.database
def test_async_destroy_completes_live_queries(async_db, record):
    """destroy completes live searches"""
    # Arrange
    recorder = record(async_db.find_observable_equal_to({"name": "item1"}))

    # Act
    async_db.destroy()

    # Assert
    assert recorder.completed
