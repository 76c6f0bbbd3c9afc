"""Call Tests — CALL-001 through CALL-004.

Tests for:
  - Inlining of intra-class calls (requires proved, ensures kept)
  - Contract abstraction of object and preloaded static calls
  - Recursion policies
"""

import pytest

from modelverify.config import RecursionPolicy, VerifierConfig
from modelverify.errors import MalformedModelError
from modelverify.manager import verify_source
from modelverify.result import VerificationErrorType


def run_all(source: str, max_depth: int = 2, **kwargs):
    results = verify_source(source, VerifierConfig(max_depth=max_depth, **kwargs))
    return {r.class_name: r for r in results}


def run(source: str, max_depth: int = 2, **kwargs):
    return verify_source(source, VerifierConfig(max_depth=max_depth, **kwargs))[-1]


ACCUMULATOR = """
class Accumulator
{
    int Total = 0;

    private int Twice(int v)
        require v >= 0
        ensure Result == v * 2
    {
        return v + v;
    }

    public void Add(int n)
        %s
    {
        %s
    }

    invariant Total >= 0;
}
"""


# ===========================================================================
# CALL-001: Intra-class inlining
# ===========================================================================

class TestCALL001:
    """CALL-001: Intra-class calls are inlined with their contracts checked."""

    def test_call_satisfying_callee_require(self):
        source = ACCUMULATOR % ("require n >= 0", "Total = Total + Twice(n);")
        assert run(source).is_success

    def test_call_violating_callee_require(self):
        source = ACCUMULATOR % ("", "Total = Total + Twice(n);")
        result = run(source, max_depth=1)
        assert result.error_type == VerificationErrorType.REQUIRE_ERROR
        assert result.method_name == "Twice"
        assert result.text == "v >= 0"
        assert result.call_sequence == ("Add",)

    def test_callee_require_checked_only_on_the_calling_path(self):
        source = ACCUMULATOR % ("", "if (n > 0) { Total = Total + Twice(n); }")
        assert run(source).is_success

    def test_callee_ensure_violation(self):
        source = """
class Broken
{
    int X = 0;

    private int One()
        ensure Result == 1
    {
        return 2;
    }

    public void Use() { X = One(); }
}
"""
        result = run(source, max_depth=1)
        assert result.error_type == VerificationErrorType.ENSURE_ERROR
        assert result.method_name == "One"

    def test_call_statement_updates_state(self):
        source = """
class Steps
{
    int X = 0;

    private void Reset() { X = 0; }

    public void Go()
    {
        X = 7;
        Reset();
    }

    invariant X == 0;
}
"""
        assert run(source, max_depth=2).is_success

    def test_same_callee_twice_in_one_body(self):
        source = """
class Twice
{
    int X = 0;

    private int Inc(int v) { return v + 1; }

    public void Go() { X = Inc(Inc(0)); }

    invariant X == 0 || X == 2;
}
"""
        assert run(source, max_depth=2).is_success

    def test_public_method_can_be_called_internally(self):
        source = """
class Internal
{
    int X = 0;

    public void Set(int v)
        require v >= 0
    {
        X = v;
    }

    public void SetTen() { Set(10); }

    invariant X >= 0;
}
"""
        assert run(source, max_depth=2).is_success


# ===========================================================================
# CALL-002: Object fields
# ===========================================================================

OWNER = """
class Counter
{
    int Value = 0;

    public void Inc()
        ensure Value > 0
    {
        Value = Value + 1;
    }

    invariant Value >= 0;
}

class Owner
{
    Counter c = new Counter();
    int Calls = 0;

    public void Tick()
    {
        c.Inc();
        Calls = Calls + 1;
    }

    invariant %s;
}
"""


class TestCALL002:
    """CALL-002: Calls through object fields are abstracted by the callee contract."""

    def test_callee_ensure_and_invariant_are_assumed(self):
        results = run_all(OWNER % "c.Value >= 0 && Calls >= 0")
        assert results["Counter"].is_success
        assert results["Owner"].is_success

    def test_callee_state_is_forgotten(self):
        result = run_all(OWNER % "c.Value == 1", max_depth=2)["Owner"]
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR
        assert result.call_sequence == ("Tick",)

    def test_child_initial_state(self):
        result = run_all(OWNER % "c.Value == 0", max_depth=0)["Owner"]
        assert result.is_success

    def test_object_require_checked_at_call_site(self):
        source = """
class Tank
{
    int Level = 0;

    public void Fill(int amount)
        require amount > 0
    {
        Level = Level + amount;
    }
}

class Pump
{
    Tank t = new Tank();

    public void Push(int a) { t.Fill(a); }
}
"""
        result = run_all(source, max_depth=1)["Pump"]
        assert result.error_type == VerificationErrorType.REQUIRE_ERROR
        assert result.method_name == "Tank.Fill"


# ===========================================================================
# CALL-003: Preloaded static calls
# ===========================================================================

GEOMETRY = """
class Geometry
{
    double R = 0.0;

    public void Set(double v)
        %s
    {
        R = Math.Sqrt(v);
    }

    invariant R >= 0;
}
"""


class TestCALL003:
    """CALL-003: Math.Sqrt is used through its contract."""

    def test_sqrt_with_valid_argument(self):
        assert run(GEOMETRY % "require v >= 0").is_success

    def test_sqrt_with_negative_argument(self):
        result = run(GEOMETRY % "", max_depth=1)
        assert result.error_type == VerificationErrorType.REQUIRE_ERROR
        assert result.method_name == "Math.Sqrt"

    def test_preloaded_class_is_not_verified(self):
        results = verify_source(GEOMETRY % "require v >= 0", VerifierConfig(max_depth=1))
        assert [r.class_name for r in results] == ["Geometry"]


# ===========================================================================
# CALL-004: Recursion policies
# ===========================================================================

PING_PONG = """
class PingPong
{
    int X = 0;

    public void Ping() { Pong(); }
    private void Pong() { X = X + 1; Ping(); }

    invariant X >= 0;
}
"""


class TestCALL004:
    """CALL-004: Recursive calls are rejected or abstracted, as configured."""

    def test_reject_is_default(self):
        with pytest.raises(MalformedModelError, match="Ping -> Pong -> Ping"):
            run(PING_PONG)

    def test_abstract_havocs_state(self):
        result = run(PING_PONG, max_depth=1, recursion=RecursionPolicy.ABSTRACT, max_inline_depth=2)
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR

    def test_abstract_uses_callee_contract(self):
        source = """
class Depth
{
    int Last = 1;

    private int F(int n)
        require n >= 0
        ensure Result >= 1
    {
        if (n == 0) { return 1; }
        return F(n - 1) + 1;
    }

    public void Compute(int k)
        require k >= 0 && k < 5
    {
        Last = F(k);
    }

    invariant Last >= 1;
}
"""
        result = run(source, max_depth=1, recursion=RecursionPolicy.ABSTRACT, max_inline_depth=3)
        assert result.is_success

    def test_self_recursion_rejected(self):
        source = """
class Loop
{
    public void Spin() { Spin(); }
}
"""
        with pytest.raises(MalformedModelError, match="Spin -> Spin"):
            run(source)
