import logging
import threading

import pytest

from graphquery import AccessMode
from graphquery.errors import SchemaValidationError
from graphquery.mutations import create_node, merge_node, relate
from graphquery.schema import NodeSchema, PropertyDef, RelSchema, SchemaRegistry


def _registry() -> SchemaRegistry:
    reg = SchemaRegistry()
    reg.register_node(NodeSchema("Person", [
        PropertyDef("name", "str"),
        PropertyDef("age", "int", required=False),
    ]))
    reg.register_rel(RelSchema("KNOWS", [PropertyDef("since", "int")]))
    return reg


# ---------- registry ----------
def test_lookup():
    reg = _registry()
    assert reg.get_node_schema("Person").label == "Person"
    assert reg.get_rel_schema("KNOWS").type == "KNOWS"
    assert reg.lookup("KNOWS") is reg.get_rel_schema("KNOWS")
    assert reg.get_node_schema("Nope") is None
    assert len(reg) == 2

def test_register_rejects_wrong_type():
    with pytest.raises(TypeError):
        SchemaRegistry().register_node(RelSchema("KNOWS"))

def test_concurrent_registration():
    reg = SchemaRegistry()
    def worker(i: int) -> None:
        reg.register_node(NodeSchema(f"L{i}"))
    threads = [threading.Thread(target=worker, args=(i,)) for i in range(50)]
    for t in threads: t.start()
    for t in threads: t.join()
    assert len(reg) == 50


# ---------- mutation helpers ----------
def test_create_node():
    st = create_node("Person", {"name": "Alice", "age": 30})
    assert st.text == "CREATE (n:Person {name: $name, age: $age}) RETURN n"
    assert st.parameters == {"name": "Alice", "age": 30}
    assert st.access_mode == AccessMode.WRITE
    assert create_node("Person").text == "CREATE (n:Person) RETURN n"

def test_create_node_missing_required_property():
    with pytest.raises(SchemaValidationError):
        create_node("Person", {"age": 3}, registry=_registry())

def test_unknown_property_only_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="graphquery.schema"):
        st = create_node("Person", {"name": "A", "nick": "a"}, registry=_registry())
    assert st.parameters == {"name": "A", "nick": "a"}
    assert "Unknown property 'nick'" in caplog.text

def test_merge_node():
    st = merge_node("Person", {"name": "Alice"}, on_create={"age": 30}, on_match={"seen": "2025"})
    assert st.text == ("MERGE (n:Person {name: $name}) ON CREATE SET n.age = $age "
                       "ON MATCH SET n.seen = $seen RETURN n")
    assert st.parameters == {"name": "Alice", "age": 30, "seen": "2025"}

def test_relate():
    st = relate("4:x:1", "KNOWS", "4:x:2", {"since": 2024}, registry=_registry())
    assert st.text == ("MATCH (a), (b) WHERE elementId(a) = $__start_id AND elementId(b) = $__end_id "
                       "CREATE (a)-[r:KNOWS {since: $since}]->(b) RETURN r")
    assert st.parameters == {"__start_id": "4:x:1", "__end_id": "4:x:2", "since": 2024}
    assert st.access_mode == AccessMode.WRITE

def test_relate_validates_relationship_schema():
    with pytest.raises(SchemaValidationError):
        relate("1", "KNOWS", "2", registry=_registry())

def test_merge_same_key_in_create_and_match_sections():
    st = merge_node("Person", {"name": "A"}, on_create={"status": "new"}, on_match={"status": "seen"})
    assert st.text == ("MERGE (n:Person {name: $name}) ON CREATE SET n.status = $status "
                       "ON MATCH SET n.status = $on_match_status RETURN n")
    assert st.parameters == {"name": "A", "status": "new", "on_match_status": "seen"}

def test_merge_key_repeated_in_match_and_on_create():
    st = merge_node("Person", {"name": "A"}, on_create={"name": "B"})
    assert st.text == "MERGE (n:Person {name: $name}) ON CREATE SET n.name = $on_create_name RETURN n"
    assert st.parameters == {"name": "A", "on_create_name": "B"}

def test_create_node_with_non_identifier_key():
    st = create_node("Person", {"first name": "Ann", "age": 3})
    assert st.text == "CREATE (n:Person {`first name`: $props_p0, age: $age}) RETURN n"
    assert st.parameters == {"props_p0": "Ann", "age": 3}

def test_relate_property_named_like_internal_id():
    st = relate("1", "KNOWS", "2", {"__start_id": "x"})
    assert "{__start_id: $props___start_id}" in st.text
    assert st.parameters == {"__start_id": "1", "__end_id": "2", "props___start_id": "x"}
