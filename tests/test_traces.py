import pytest

from megakey.callgraph import CallGraphResolver
from megakey.config import ExtractorConfig
from megakey.exceptions import InvalidMapping, NotFound
from megakey.scanner import scan_functions
from megakey.traces import map_join_arrays, scan_call_shape, trace_api_route, trace_crypto_call

from payloads import API_KEY, API_PAYLOAD, CRYPTO_KEY, CRYPTO_PAYLOAD, FALLBACK_KEY, FALLBACK_PAYLOAD


def resolver_for(text: str, config: ExtractorConfig) -> CallGraphResolver:
    return CallGraphResolver(scan_functions(text), config, text=text)


def test_map_join_arrays() -> None:
    assert map_join_arrays('N.map(function (i) { return S[i]; }).join("")') == ("N", "S")
    assert map_join_arrays('t["map"](c => c).join("")') == ("t", None)
    assert map_join_arrays("a() + b()") is None
    assert map_join_arrays("t.map(c => c)") is None


def test_api_trace_decodes_hex_array() -> None:
    config = ExtractorConfig()
    hits = list(trace_api_route(API_PAYLOAD, resolver_for(API_PAYLOAD, config), config))
    assert hits[0].key == API_KEY
    assert "hop 2" in hits[0].detail


def test_api_trace_requires_marker() -> None:
    config = ExtractorConfig()
    text = API_PAYLOAD.replace("getSources", "getThings")
    with pytest.raises(NotFound):
        list(trace_api_route(text, resolver_for(text, config), config))


def test_api_trace_rejects_non_hex_fragments() -> None:
    config = ExtractorConfig()
    text = API_PAYLOAD.replace('"4b"', '"zz"')
    with pytest.raises(InvalidMapping):
        list(trace_api_route(text, resolver_for(text, config), config))


def test_api_trace_follows_function_chain() -> None:
    text = """
    request("/embed-1/v2/e-1/getSources?id=" + id, function (res) {
        state.sources = res;
        state.key = secretKey;
    });
    function one() { return "Route"; }
    function two() { return "Key-01"; }
    function secretKey() { return one() + two(); }
    """
    config = ExtractorConfig()
    (hit,) = list(trace_api_route(text, resolver_for(text, config), config))
    assert hit.key == "RouteKey-01"


def test_crypto_trace_resolves_identifier_argument() -> None:
    config = ExtractorConfig()
    hits = list(trace_crypto_call(CRYPTO_PAYLOAD, resolver_for(CRYPTO_PAYLOAD, config), config))
    assert hits[0].key == CRYPTO_KEY


def test_crypto_trace_literal_and_bracket_forms() -> None:
    text = 'var out = CryptoJS["AES"]["decrypt"](blob, "L1teral-Key-42");'
    config = ExtractorConfig()
    (hit,) = list(trace_crypto_call(text, resolver_for(text, config), config))
    assert hit.key == "L1teral-Key-42"


def test_crypto_trace_marker_literal() -> None:
    text = "eval(decode(JScripts, 'Lit3ralKey_9xQ'));"
    config = ExtractorConfig()
    (hit,) = list(trace_crypto_call(text, resolver_for(text, config), config))
    assert hit.key == "Lit3ralKey_9xQ"
    assert "JScripts" in hit.detail


def test_crypto_trace_without_call_sites() -> None:
    config = ExtractorConfig()
    with pytest.raises(NotFound):
        list(trace_crypto_call("var x = 1;", resolver_for("", config), config))


def test_call_shape_scan_uses_object_members() -> None:
    config = ExtractorConfig()
    (hit,) = list(scan_call_shape(FALLBACK_PAYLOAD, config))
    assert hit.key == FALLBACK_KEY


def test_call_shape_scan_requires_exact_count() -> None:
    config = ExtractorConfig(fallback_call_count=8)
    with pytest.raises(NotFound):
        list(scan_call_shape(FALLBACK_PAYLOAD, config))


@pytest.mark.parametrize("tail", ["+ i().x; }", "+ i()[0]; }"])
def test_call_shape_scan_rejects_access_after_last_call(tail: str) -> None:
    text = FALLBACK_PAYLOAD.replace("+ i(); }", tail)
    with pytest.raises(NotFound):
        list(scan_call_shape(text, ExtractorConfig()))


def test_call_shape_scan_rejects_access_on_parenthesised_calls() -> None:
    text = FALLBACK_PAYLOAD.replace("return a()", "return (a()").replace("+ i(); }", "+ i()).length; }")
    with pytest.raises(NotFound):
        list(scan_call_shape(text, ExtractorConfig()))


def test_call_shape_scan_accepts_parenthesised_return() -> None:
    text = FALLBACK_PAYLOAD.replace("return a()", "return (a()").replace("+ i(); }", "+ i()); }")
    (hit,) = list(scan_call_shape(text, ExtractorConfig()))
    assert hit.key == FALLBACK_KEY
