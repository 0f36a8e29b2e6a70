import pytest

from graphquery import AccessMode, BinaryOp, Call, Var, Return, Match, NodeRef, Property, Param
from graphquery.builder import Cypher, node, rel, prop, param
from graphquery.errors import ClauseError
from graphquery.query_compiler import QueryCompiler


def test_constructors():
    assert node("p", "Person") == NodeRef("p", "Person")
    assert node("p", "Person", name="A").props == {"name": "A"}
    assert node("p", "Person", label="x").label == "Person"
    assert rel("r", "KNOWS", (1, 2)).hops == (1, 2)
    assert rel("r", "KNOWS", type="t", hops=3).props == {"type": "t", "hops": 3}
    assert prop("p.name") == Property("p", "name")
    assert prop("p", "name") == Property("p", "name")
    assert param("x", 1) == Param("x", 1)

def test_fluent_read_query():
    st = (Cypher()
          .match(node("p", "Person"))
          .where(BinaryOp(">", prop("p.age"), param("min_age", 30)))
          .ret(name=prop("p.name"))
          .order_by(prop("p.name"))
          .limit(10)
          .compile())
    assert st.text == "MATCH (p:Person) WHERE p.age > $min_age RETURN p.name AS name ORDER BY p.name LIMIT 10"
    assert st.parameters == {"min_age": 30}
    assert st.access_mode == AccessMode.READ

def test_builder_compiles_like_clause_list():
    q = Cypher().match(node("p", "Person")).ret("p")
    assert QueryCompiler().compile(q) == QueryCompiler().compile([Match(NodeRef("p", "Person")), Return(["p"])])
    assert len(q) == 2

def test_fluent_write_query():
    st = (Cypher()
          .merge(node("p", "Person", name=param("name", "Alice")))
          .on_create_set((prop("p.created"), Call("timestamp")))
          .set((prop("p.age"), param("age", 31)))
          .assign(prop("p.active"), True)
          .ret("p")
          .compile())
    assert st.text == ("MERGE (p:Person {name: $name}) ON CREATE SET p.created = timestamp() "
                       "SET p.age = $age, p.active = true RETURN p")
    assert st.access_mode == AccessMode.WRITE

def test_call_and_foreach_take_builders():
    sub = Cypher().with_("p").match(node("p") >> rel(None, "KNOWS") >> node("f")).ret(n=Call("count", [Var("f")]))
    st = Cypher().match(node("p", "Person")).call(sub).ret("p", "n").compile()
    assert st.text == ("MATCH (p:Person) CALL { WITH p MATCH (p)-[:KNOWS]->(f) RETURN count(f) AS n } "
                       "RETURN p, n")
    st = Cypher().foreach(param("xs", [1, 2]), "x", Cypher().create(node(None, "N", v=Var("x")))).compile()
    assert st.text == "FOREACH (x IN $xs | CREATE (:N {v: x}))"

def test_union_and_schema():
    st = Cypher().match(node("a", "A")).ret("a").union_all().match(node("b", "B")).ret("b").compile()
    assert st.text == "MATCH (a:A) RETURN a UNION ALL MATCH (b:B) RETURN b"
    st = Cypher().create_constraint("User", "email", name="user_email", if_not_exists=True).compile()
    assert st.text == "CREATE CONSTRAINT user_email IF NOT EXISTS FOR (n:User) REQUIRE n.email IS UNIQUE"

def test_non_list_body_is_rejected():
    with pytest.raises(ClauseError):
        Cypher().match(node("p")).call("RETURN 1").compile()
