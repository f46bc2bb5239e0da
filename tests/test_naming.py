import pytest

from fixture_builder.errors import DuplicateNameError, InvalidArgumentError
from fixture_builder.naming import (
    NameRegistry,
    RecordNamer,
    RowIndex,
    name_from_value,
    successor,
    underscore,
)


def _name_all(namer, rows, table="users"):
    ledger, counter = [], RowIndex()
    return [namer.assign_name(r, table, ledger, counter) for r in rows]


def test_successor_digits():
    assert successor("000") == "001"
    assert successor("009") == "010"
    assert successor("099") == "100"
    assert successor("999") == "1000"


def test_successor_letters_and_separators():
    assert successor("az") == "ba"
    assert successor("zz") == "aaa"
    assert successor("Zz") == "AAa"
    assert successor("a9") == "b0"
    assert successor("1.9") == "2.0"
    assert successor("**") == "*+"


def test_row_index_counts_through_rollover():
    counter = RowIndex()
    values = [counter.succ() for _ in range(1000)]
    assert values[0] == "001"
    assert values[998] == "999"
    assert values[999] == "1000"
    assert str(counter) == "1000"


def test_underscore_and_name_from_value():
    assert underscore("BobSmith") == "bob_smith"
    assert underscore("HTTPServer") == "http_server"
    assert name_from_value("Bob Smith") == "bob_smith"
    assert name_from_value("Mr. O'Brien") == "mr_o_brien"
    assert name_from_value("a   b") == "a_b"


def test_inferred_name_is_deterministic():
    row = {"id": 7, "name": "Bob Smith"}
    first = _name_all(RecordNamer(NameRegistry()), [row])
    second = _name_all(RecordNamer(NameRegistry()), [row])
    assert first == second == ["bob_smith"]


def test_collision_suffixing():
    rows = [{"id": i, "name": "Alice"} for i in (1, 2, 3)]
    assert _name_all(RecordNamer(NameRegistry()), rows) == ["alice", "alice_1", "alice_2"]


def test_collision_count_uses_prefix_match():
    rows = [{"id": 1, "name": "alice"}, {"id": 2, "name": "al"}]
    assert _name_all(RecordNamer(NameRegistry()), rows) == ["alice", "al_1"]


def test_candidate_field_order_and_blank_values():
    namer = RecordNamer(NameRegistry())
    rows = [
        {"id": 1, "name": "", "title": "Hello World", "login": "hw"},
        {"id": 2, "display_name": "Shown", "name": "Hidden"},
        {"id": 3, "name": None, "login": "root"},
    ]
    assert _name_all(namer, rows) == ["hello_world", "shown", "root"]


def test_custom_record_name_fields():
    namer = RecordNamer(NameRegistry(), record_name_fields=("email",))
    rows = [{"id": 1, "name": "Bob", "email": "bob@example.com"}]
    assert _name_all(namer, rows) == ["bob_example_com"]


def test_fallback_uses_table_and_counter():
    rows = [{"id": 1}, {"id": 2, "name": "Named"}, {"id": 3}]
    assert _name_all(RecordNamer(NameRegistry()), rows, table="posts") == ["posts_001", "named", "posts_002"]


def test_counter_resets_per_table_run():
    namer = RecordNamer(NameRegistry())
    assert _name_all(namer, [{"id": 1}], table="tags") == ["tags_001"]
    assert _name_all(namer, [{"id": 1}], table="tags") == ["tags_001"]


def test_explicit_name_beats_inference():
    registry = NameRegistry()
    registry.name("admin", "users", {"id": 1})
    rows = [{"id": 1, "name": "Bob Smith"}, {"id": 2, "name": "Bob Smith"}]
    assert _name_all(RecordNamer(registry), rows) == ["admin", "bob_smith"]


def test_explicit_name_beats_callback():
    registry = NameRegistry()
    registry.name_table_with("users", lambda row, index: f"user_{index}")
    registry.name("boss", "users", {"id": "2"})
    rows = [{"id": 1}, {"id": 2}, {"id": 3}]
    assert _name_all(RecordNamer(registry), rows) == ["user_001", "boss", "user_002"]


def test_callback_receives_row_and_counter():
    seen = []

    def callback(row, index):
        seen.append((row["id"], index))
        return row["id"] * 10

    registry = NameRegistry()
    registry.name_table_with("posts", callback)
    names = _name_all(RecordNamer(registry), [{"id": 1}, {"id": 2}], table="posts")
    assert names == ["10", "20"]
    assert seen == [(1, "001"), (2, "002")]


def test_callback_names_count_as_collisions():
    registry = NameRegistry()
    registry.name_table_with("users", lambda row, index: "bob")
    namer = RecordNamer(registry)
    ledger, counter = [], RowIndex()
    namer.assign_name({"id": 1}, "users", ledger, counter)
    registry.table_callbacks.clear()
    assert namer.assign_name({"id": 2, "name": "Bob"}, "users", ledger, counter) == "bob_1"
    assert ledger == ["bob", "bob_1"]


def test_name_rejects_blank_name_and_rows():
    registry = NameRegistry()
    with pytest.raises(InvalidArgumentError):
        registry.name("", "users", {"id": 1})
    with pytest.raises(InvalidArgumentError):
        registry.name("  ", "users", {"id": 1})
    with pytest.raises(InvalidArgumentError):
        registry.name("bob", "users")
    with pytest.raises(InvalidArgumentError):
        registry.name("bob", "users", None)
    with pytest.raises(InvalidArgumentError):
        registry.name("bob", "users", {})
    assert registry.custom_names == {}


def test_duplicate_name_raises_and_keeps_first():
    registry = NameRegistry()
    row = {"id": 1, "name": "Bob"}
    assert registry.name("bob_the_first", "users", row) is row

    with pytest.raises(DuplicateNameError):
        registry.name("bob_again", "users", row)

    assert registry.custom_name_for("users", row) == "bob_the_first"
    assert _name_all(RecordNamer(registry), [row]) == ["bob_the_first"]


def test_duplicate_in_batch_registers_nothing():
    registry = NameRegistry()
    registry.name("taken", "users", {"id": 2})
    with pytest.raises(DuplicateNameError):
        registry.name("team", "users", {"id": 1}, {"id": 2})
    assert registry.custom_name_for("users", {"id": 1}) is None
    assert registry.custom_name_for("users", {"id": 2}) == "taken"


def test_same_id_in_different_tables_is_not_a_duplicate():
    registry = NameRegistry()
    registry.name("first", "users", {"id": 1})
    registry.name("first_post", "posts", {"id": 1})
    assert registry.custom_name_for("posts", {"id": 1}) == "first_post"


def test_name_accepts_objects_with_id():
    class Record:
        def __init__(self, id):
            self.id = id

    registry = NameRegistry()
    a, b = Record(4), Record(5)
    assert registry.name("pair", "users", a, b) == (a, b)
    assert registry.custom_name_for("users", {"id": 5}) == "pair"


def test_name_table_with_rejects_non_callable():
    with pytest.raises(InvalidArgumentError):
        NameRegistry().name_table_with("users", "not callable")
