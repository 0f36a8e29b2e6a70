import pytest
from hypothesis import given, strategies as st

from graphquery import Chain, Direction, NodeRef, RelRef, Param
from graphquery.errors import DirectionError, PatternError
from graphquery.expressions import ExpressionCompiler
from graphquery.params import ParameterRegistry
from graphquery.patterns import PatternCompiler


def _compiler() -> PatternCompiler:
    return PatternCompiler(ExpressionCompiler(ParameterRegistry()))

def _render(pattern) -> str:
    return _compiler().compile(pattern)


# ---------- nodes ----------
def test_node_forms():
    assert _render(NodeRef("p", "Person")) == "(p:Person)"
    assert _render(NodeRef("p")) == "(p)"
    assert _render(NodeRef(label="Person")) == "(:Person)"
    assert _render(NodeRef()) == "()"
    assert _render("p") == "(p)"

def test_node_inline_properties_use_parameters():
    pc = _compiler()
    text = pc.compile(NodeRef("p", "Person", {"name": Param("name", "Alice")}))
    assert text == "(p:Person {name: $name})"
    assert pc.expressions.registry.finalize() == {"name": "Alice"}

def test_odd_label_is_backtick_quoted():
    assert _render(NodeRef("p", "Big Label")) == "(p:`Big Label`)"

def test_pattern_list_joined_with_commas():
    assert _render([NodeRef("a"), NodeRef("b")]) == "(a), (b)"


# ---------- chains ----------
def test_forward_chain():
    chain = NodeRef("a", "Person") >> RelRef(type="KNOWS") >> NodeRef("b", "Person")
    assert _render(chain) == "(a:Person)-[:KNOWS]->(b:Person)"

def test_backward_chain_from_names():
    chain = "a" << RelRef(type="WORKS_AT") << "c"
    assert _render(chain) == "(a)<-[:WORKS_AT]-(c)"

def test_direction_may_change_at_a_shared_node():
    chain = (NodeRef("a", "Person") >> RelRef(type="KNOWS") >> NodeRef("b", "Person")
             << RelRef(type="WORKS_AT") << NodeRef("c", "Company"))
    assert _render(chain) == "(a:Person)-[:KNOWS]->(b:Person)<-[:WORKS_AT]-(c:Company)"

def test_mismatched_direction_around_relationship_raises():
    chain = NodeRef("a") >> RelRef(type="KNOWS") << NodeRef("b")
    with pytest.raises(DirectionError) as ei:
        _render(chain)
    assert "position 1" in str(ei.value)

def test_undirected_chain():
    chain = Chain.of(NodeRef("a"), RelRef(type="R"), NodeRef("b"), direction=Direction.UNDIRECTED)
    assert _render(chain) == "(a)-[:R]-(b)"

def test_named_relationship_with_properties():
    chain = NodeRef("a") >> RelRef("r", "KNOWS", props={"since": 2020}) >> NodeRef("b")
    assert _render(chain) == "(a)-[r:KNOWS {since: 2020}]->(b)"

def test_even_length_chain_rejected():
    with pytest.raises(PatternError):
        _render(Chain([NodeRef("a"), RelRef(type="R")], [Direction.FORWARD]))

def test_alternation_enforced():
    with pytest.raises(PatternError):
        _render(Chain([NodeRef("a"), NodeRef("b"), NodeRef("c")], [Direction.FORWARD] * 2))

def test_lone_relationship_rejected():
    with pytest.raises(PatternError):
        _render(RelRef(type="KNOWS"))

@pytest.mark.parametrize("hops, expected", [
    (2, "r:KNOWS*2"),
    ((1, 3), "r:KNOWS*1..3"),
    ((2, None), "r:KNOWS*2.."),
    ((None, 5), "r:KNOWS*..5"),
    ((None, None), "r:KNOWS*"),
])
def test_variable_length_hops(hops, expected):
    assert _compiler().rel_inner(RelRef("r", "KNOWS", hops)) == expected

@pytest.mark.parametrize("hops", [(3, 1), -1, (1.5, 2), "2"])
def test_invalid_hops(hops):
    with pytest.raises(PatternError):
        _compiler().rel_inner(RelRef("r", "KNOWS", hops))


@given(st.integers(min_value=1, max_value=6))
def test_uniform_forward_chain_rendering(k):
    chain = NodeRef("n0")
    for i in range(1, k):
        chain = chain >> RelRef(type="R") >> NodeRef(f"n{i}")
    text = _render(chain)
    assert text.count("]->(") == k - 1
    assert "<-" not in text
    assert text.startswith("(n0)") and text.endswith(f"(n{k - 1})")
