"""Small obfuscated-style payloads shared by the tests."""

# 32 characters, mixed case and digits.
CHAIN_KEY = "aB3dE5gHiJ7kL9mNoP1qR2sTuV4wX6yZ"

CHAIN_PAYLOAD = """
var p1 = function () { return "aB3dE5gH"; };
var p2 = () => "iJ7kL9mN";
function p3() {
    if (Date.now() > 0) {
        return "oP1qR2sT";
    }
    return "decoy___";
}
var p4 = () => { return "uV4w" + "X6yZ"; };
var build = function () { return p1() + p2() + p3() + p4(); };
"""

ARRAY_KEY = "Xk9aQp7mZt4rLw2eHy8uBc5n"

ARRAY_PAYLOAD = """
var S = ["Xk", "9a", "Qp", "7m", "Zt", "4r", "Lw", "2e", "Hy", "8u", "Bc", "5n", "Dv", "3s", "Fg", "6j"];
var N = [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11];
var key = N.map(function (i) { return S[i]; }).join("");
"""

API_KEY = "KeyFromApi!2"

API_PAYLOAD = """
var url = "/embed-1/v2/e-1/getSources?id=" + id;
fetch(url).then(function (r) { return r.json(); }).then(function (d) {
    window.__z0 = d;
    window.__z1d = Z;
});
var t = ["4b", "65", "79", "46", "72", "6f", "6d", "41", "70", "69", "21", "32"];
var Z = () => { return t.map(function (c) { return c; }).join(""); };
"""

CRYPTO_KEY = "CrYpT0-Key#77"

CRYPTO_PAYLOAD = """
var k1 = function () { return "CrYpT0"; };
var k2 = function () { return "-Key#77"; };
var secret = k1() + k2();
var plain = CryptoJS.AES.decrypt(payload, secret).toString(CryptoJS.enc.Utf8);
"""

FALLBACK_KEY = "FaLLb4ckK3y!Zq8wRt"

FALLBACK_PAYLOAD = """
var o = {
    a() { return "Fa"; },
    b() { return "LL"; },
    c() { return "b4"; },
    d() { return "ck"; },
    e() { return "K3"; },
    f() { return "y!"; },
    g() { return "Zq"; },
    h() { return "8w"; },
    i() { return "Rt"; }
};
function build(x) { return a() + b() + c() + d() + e() + f() + g() + h() + i(); }
"""

MINIFIED_KEY = "aB3dE5gHiJ7kL9mN"

# No whitespace around braces, ``if`` or ``return``; the guarded leaf comes first.
MINIFIED_PAYLOAD = (
    'p=()=>{if(Date.now()>0){return"aB3dE5gH"}return"decoy___"};'
    'q=function(){return"iJ7kL9mN"};k=()=>p()+q();'
)

# A quote inside a regular expression literal must not open a string.
REGEX_PAYLOAD = 'p1 = () => { var r = /"/g; return "aB3dE5gH"; }; p2 = () => "iJ7kL9mN"; k = () => p1() + p2();'

LARGE_FRAGMENTS = [f"k{i:03d}" for i in range(300)]
LARGE_INDICES = [*range(0, 300, 30), 1]
LARGE_ARRAY_KEY = "".join(LARGE_FRAGMENTS[i] for i in LARGE_INDICES)

# The fragment array alone is far longer than the proximity threshold.
LARGE_ARRAY_PAYLOAD = (
    "var S = [" + ", ".join(f'"{item}"' for item in LARGE_FRAGMENTS) + "];\n"
    "var N = [" + ", ".join(str(i) for i in LARGE_INDICES) + "];\n"
)
