import pytest

from megakey.callgraph import CallChain, CallGraphResolver, chain_calls
from megakey.config import ExtractorConfig
from megakey.exceptions import NotFound, RecursionLimitExceeded
from megakey.scanner import scan_functions

from payloads import CHAIN_KEY, MINIFIED_KEY


def resolver_for(text: str, **overrides) -> CallGraphResolver:
    config = ExtractorConfig().with_overrides(**overrides)
    return CallGraphResolver(scan_functions(text), config, text=text)


def test_chain_calls() -> None:
    assert chain_calls("a() + b() + c()") == ("a", "b", "c")
    assert chain_calls("(a() + b())") == ("a", "b")
    assert chain_calls("a()") is None
    assert chain_calls('a() + "x"') is None


def test_four_call_chain_concatenates_in_order() -> None:
    text = """
    f1 = () => "a";
    f2 = () => "b";
    f3 = () => "c";
    f4 = () => "d";
    k = () => f1() + f2() + f3() + f4();
    """
    resolver = resolver_for(text)
    assert [chain.root for chain in resolver.find_composers()] == ["k"]
    assert resolver.resolve() == "abcd"


def test_guarded_and_folded_leaves(chain_payload: str) -> None:
    assert resolver_for(chain_payload).resolve() == CHAIN_KEY


def test_nested_composers_prefer_roots() -> None:
    text = """
    function a() { return "A1"; }
    function b() { return "B2"; }
    function c() { return "C3"; }
    function inner() { return b() + c(); }
    function outer() { return a() + inner(); }
    """
    resolver = resolver_for(text)
    assert [chain.root for chain in resolver.find_composers()] == ["outer", "inner"]
    assert resolver.resolve() == "A1B2C3"


def test_cycle_terminates_with_recursion_error() -> None:
    text = """
    f = () => g() + h();
    g = () => f() + h();
    h = () => "x";
    """
    resolver = resolver_for(text)
    assert resolver.resolve() is None
    assert resolver.failures
    assert all(isinstance(error, RecursionLimitExceeded) for error in resolver.failures)


def test_depth_limit() -> None:
    lines = [f"f{i} = () => f{i + 1}();" for i in range(15)]
    lines.append('f15 = () => "deep";')
    text = "\n".join(lines)
    with pytest.raises(RecursionLimitExceeded):
        resolver_for(text).resolve_call("f0")
    assert resolver_for(text, max_recursion_depth=20).resolve_call("f0") == "deep"


def test_unknown_call_rejects_the_whole_chain() -> None:
    text = 'a = () => "part"; k = () => a() + missing();'
    resolver = resolver_for(text)
    assert resolver.resolve() is None
    assert isinstance(resolver.failures[0], NotFound)
    with pytest.raises(NotFound):
        resolver.resolve_chain(CallChain("k", ("a", "missing")))


def test_identifier_assignment_resolution() -> None:
    text = 'var part = "left"; var whole = part + tail(); function tail() { return "right"; }'
    resolver = resolver_for(text)
    assert resolver.resolve_identifier("whole") == "leftright"
    assert resolver.assignment_of("nothing") is None


def test_first_definition_wins() -> None:
    text = 'a = () => "first"; a = () => "second"; b = () => "BB"; k = () => a() + b();'
    assert resolver_for(text).resolve() == "firstBB"


def test_minified_guarded_leaf_takes_first_branch(minified_payload: str) -> None:
    resolver = resolver_for(minified_payload)
    assert resolver.resolve_call("p") == "aB3dE5gH"
    assert resolver.resolve() == MINIFIED_KEY


def test_minified_unguarded_leaves() -> None:
    text = 'a=()=>{return"AAAA"};b=function(){return"BB"+"CC"};k=function(){return a()+b()};'
    resolver = resolver_for(text)
    assert [chain.root for chain in resolver.find_composers()] == ["k"]
    assert resolver.resolve() == "AAAABBCC"
