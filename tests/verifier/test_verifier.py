"""Verifier Tests — VER-001 through VER-012.

Each test loads a model from source text and runs the bounded verifier:
  - branch merge, require consistency, ensure enforcement, division safety
  - timeout precedence, determinism, depth monotonicity
  - early returns, short-circuit guards, locals
  - solver scope balance and UNKNOWN answers
"""

import pytest

from modelverify.config import VerifierConfig
from modelverify.loader import load_source
from modelverify.manager import verify_source
from modelverify.result import VerificationErrorType
from modelverify.verification.solver import SolverSession, SolverStatus, Z3SolverSession
from modelverify.verification.verifier import Verifier


def run(source: str, max_depth: int = 2, **kwargs):
    """Verify the last class declared in ``source``."""
    results = verify_source(source, VerifierConfig(max_depth=max_depth, **kwargs))
    return results[-1]


FLAG = """
class Flag
{
    int X = 0;

    public void Toggle()
    {
        if (X == 0) { X = 1; }
    }

    invariant %s;
}
"""


# ===========================================================================
# VER-001: Branch merge
# ===========================================================================

class TestVER001:
    """VER-001: A variable assigned in one arm keeps its previous value on the other."""

    def test_either_value_invariant_holds_at_depth_one(self):
        result = run(FLAG % "X == 0 || X == 1", max_depth=1)
        assert result.is_success

    def test_either_value_invariant_holds_at_depth_two(self):
        result = run(FLAG % "X == 0 || X == 1", max_depth=2)
        assert result.is_success

    def test_strict_invariant_fails_at_depth_one(self):
        result = run(FLAG % "X == 0", max_depth=1)
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR
        assert result.call_sequence == ("Toggle",)
        assert result.method_name == "Toggle"
        assert result.text == "X == 0"

    def test_strict_invariant_holds_at_depth_zero(self):
        assert run(FLAG % "X == 0", max_depth=0).is_success

    def test_untouched_variable_keeps_previous_value_not_default(self):
        source = """
class Keep
{
    int X = 5;
    int Y = 0;

    public void Step(bool b)
    {
        if (b) { Y = 1; } else { Y = 2; }
    }

    invariant X == 5;
}
"""
        assert run(source, max_depth=2).is_success

    def test_false_arm_reads_value_from_before_conditional(self):
        source = """
class Swap
{
    int X = 3;

    public void Step(bool b)
    {
        if (b) { X = 10; } else { X = X + 1; }
    }

    invariant X == 10 || X == 4;
}
"""
        assert run(source, max_depth=1).is_success

    def test_nested_conditionals(self):
        source = """
class Nested
{
    int X = 0;

    public void Step(int a, int b)
    {
        if (a > 0)
        {
            if (b > 0) { X = 1; } else { X = 2; }
        }
        else X = 3;
    }

    invariant X >= 0 && X <= 3;
}
"""
        assert run(source, max_depth=2).is_success


# ===========================================================================
# VER-002: Require consistency
# ===========================================================================

class TestVER002:
    """VER-002: Contradictory requires yield RequireError regardless of the body."""

    def test_contradictory_requires(self):
        source = """
class Contradiction
{
    int X = 0;

    public void M(int x)
        require x == 0
        require x != 0
    {
        X = x;
    }
}
"""
        result = run(source, max_depth=1)
        assert result.error_type == VerificationErrorType.REQUIRE_ERROR
        assert result.method_name == "M"
        assert result.clause_index == 1
        assert result.text == "x != 0"

    def test_satisfiable_requires_are_assumed(self):
        source = """
class Positive
{
    int X = 1;

    public void Set(int x)
        require x > 0
    {
        X = x;
    }

    invariant X > 0;
}
"""
        assert run(source).is_success

    def test_require_contradicted_by_state(self):
        source = """
class Once
{
    int X = 0;

    public void Bump()
        require X == 0
    {
        X = 1;
    }
}
"""
        assert run(source, max_depth=1).is_success
        result = run(source, max_depth=2)
        assert result.error_type == VerificationErrorType.REQUIRE_ERROR
        assert result.call_sequence == ("Bump", "Bump")


# ===========================================================================
# VER-003: Ensure enforcement
# ===========================================================================

ECHO = """
class Echo
{
    public int Get(int x)
        %s
        ensure Result == 0
    {
        return x;
    }
}
"""


class TestVER003:
    """VER-003: Ensures are proved at method exit."""

    def test_unconstrained_parameter_violates_ensure(self):
        result = run(ECHO % "", max_depth=1)
        assert result.error_type == VerificationErrorType.ENSURE_ERROR
        assert result.method_name == "Get"
        assert result.text == "Result == 0"
        assert result.model

    def test_require_forces_ensure(self):
        assert run(ECHO % "require x == 0", max_depth=2).is_success

    def test_ensure_over_state(self):
        source = """
class Counter
{
    int Value = 0;

    public void Inc()
        ensure Value > 0
    {
        Value = Value + 1;
    }
}
"""
        assert run(source, max_depth=3).is_success


# ===========================================================================
# VER-004: Division safety
# ===========================================================================

DIVIDE = """
class Divider
{
    int X = 0;

    public void Div(int x, int y)
        %s
    {
        X = x %s y;
    }
}
"""


class TestVER004:
    """VER-004: A divisor that can be zero is an AssumeError."""

    def test_unguarded_division(self):
        result = run(DIVIDE % ("", "/"), max_depth=1)
        assert result.error_type == VerificationErrorType.ASSUME_ERROR
        assert result.text == "x / y"
        assert result.method_name == "Div"

    def test_unguarded_modulo(self):
        result = run(DIVIDE % ("", "%"), max_depth=1)
        assert result.error_type == VerificationErrorType.ASSUME_ERROR

    def test_require_makes_division_safe(self):
        assert run(DIVIDE % ("require y != 0", "/"), max_depth=2).is_success

    def test_branch_guard_makes_division_safe(self):
        source = """
class Guarded
{
    int X = 0;

    public void Div(int x, int y)
    {
        if (y != 0) { X = x / y; }
    }
}
"""
        assert run(source).is_success

    def test_short_circuit_guard_makes_division_safe(self):
        source = """
class ShortCircuit
{
    bool Big = false;

    public void Check(int x, int y)
    {
        if (y != 0 && x / y > 10) { Big = true; }
    }
}
"""
        assert run(source).is_success

    def test_non_short_circuit_and_does_not_guard(self):
        source = """
class Eager
{
    bool Big = false;

    public void Check(int x, int y)
    {
        if (y != 0 & x / y > 10) { Big = true; }
    }
}
"""
        assert run(source, max_depth=1).error_type == VerificationErrorType.ASSUME_ERROR

    def test_real_division(self):
        source = """
class Ratio
{
    double R = 0.0;

    public void Set(double a, double b)
        require b > 0.5
    {
        R = a / b;
    }
}
"""
        assert run(source).is_success


# ===========================================================================
# VER-005: Timeout precedence
# ===========================================================================

class TestVER005:
    """VER-005: A zero time budget yields Timeout, never Success."""

    def test_zero_duration_on_valid_model(self):
        result = run(FLAG % "X == 0 || X == 1", max_depth=2, max_duration=0)
        assert result.error_type == VerificationErrorType.TIMEOUT

    def test_zero_duration_on_trivial_model(self):
        source = "class Empty { }"
        assert run(source, max_depth=0, max_duration=0).is_timeout


# ===========================================================================
# VER-006: Determinism and depth monotonicity
# ===========================================================================

class TestVER006:
    """VER-006: Same inputs, same verdict; deeper runs never lose violations."""

    def test_repeated_runs_agree(self):
        source = FLAG % "X == 0"
        first = run(source, max_depth=2)
        second = run(source, max_depth=2)
        assert first.error_type == second.error_type
        assert first.call_sequence == second.call_sequence

    @pytest.mark.parametrize("depth", [1, 2, 3])
    def test_violation_persists_at_greater_depth(self, depth):
        result = run(FLAG % "X == 0", max_depth=depth)
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR
        assert len(result.call_sequence) <= depth

    def test_shortest_sequence_is_reported_first(self):
        source = """
class Ladder
{
    int X = 0;

    public void Up() { X = X + 1; }

    invariant X < 2;
}
"""
        assert run(source, max_depth=1).is_success
        result = run(source, max_depth=3)
        assert result.call_sequence == ("Up", "Up")

    def test_sequences_follow_method_table_order(self):
        source = """
class Order
{
    int X = 0;

    public void A() { X = X + 1; }
    public void B() { X = X + 10; }

    invariant X < 11;
}
"""
        result = run(source, max_depth=2)
        assert result.call_sequence == ("A", "B")


# ===========================================================================
# VER-007: Invariant at depth zero and initial state
# ===========================================================================

class TestVER007:
    """VER-007: The initial state alone must satisfy the invariants."""

    def test_initializer_violates_invariant(self):
        source = """
class Bad
{
    int X = -1;
    invariant X >= 0;
}
"""
        result = run(source, max_depth=0)
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR
        assert result.call_sequence == ()
        assert result.method_name is None

    def test_defaults_are_zero_and_false(self):
        source = """
class Defaults
{
    int I;
    double D;
    bool B;
    public bool P { get; set; }

    invariant I == 0 && D == 0.0 && !B && !P;
}
"""
        assert run(source, max_depth=0).is_success

    def test_property_initializer(self):
        source = """
class Props
{
    public int Size { get; set; } = 3;
    invariant Size == 3;
}
"""
        assert run(source, max_depth=0).is_success

    def test_private_methods_are_not_sequenced(self):
        source = """
class Hidden
{
    int X = 0;
    private void Break() { X = -1; }
    invariant X == 0;
}
"""
        assert run(source, max_depth=3).is_success


# ===========================================================================
# VER-008: Early returns
# ===========================================================================

class TestVER008:
    """VER-008: Statements after a conditional return only run on paths that did not return."""

    def test_absolute_value(self):
        source = """
class Magnitude
{
    public int Abs(int x)
        ensure Result >= 0
    {
        if (x < 0) { return -x; }
        return x;
    }
}
"""
        assert run(source).is_success

    def test_state_write_after_return_is_guarded(self):
        source = """
class Guard
{
    int X = 0;

    public void Step(bool stop)
    {
        if (stop) { return; }
        X = 1;
    }

    invariant X == 0 || X == 1;
}
"""
        assert run(source).is_success

    def test_state_after_return_still_checked(self):
        source = """
class Guard
{
    int X = 0;

    public void Step(bool stop)
    {
        if (stop) { return; }
        X = 1;
    }

    invariant X == 0;
}
"""
        result = run(source, max_depth=1)
        assert result.error_type == VerificationErrorType.INVARIANT_ERROR

    def test_both_arms_return(self):
        source = """
class Sign
{
    public int Of(int x)
        ensure Result == 1 || Result == -1
    {
        if (x >= 0) return 1; else return -1;
    }
}
"""
        assert run(source).is_success


# ===========================================================================
# VER-009: Locals
# ===========================================================================

class TestVER009:
    """VER-009: Locals start at their literal initializer or default."""

    def test_local_initializers(self):
        source = """
class Locals
{
    int X = 0;

    public void Run(int a)
    {
        int base = 10;
        int copy = a;
        bool flag;
        if (!flag) { X = base; }
    }

    invariant X == 0 || X == 10;
}
"""
        assert run(source).is_success

    def test_each_call_gets_fresh_locals(self):
        source = """
class Fresh
{
    int X = 0;

    public void Run()
    {
        int n = 1;
        X = n;
        n = 5;
    }

    invariant X <= 1;
}
"""
        assert run(source, max_depth=3).is_success


# ===========================================================================
# VER-010: Verifier API
# ===========================================================================

class TestVER010:
    """VER-010: Verifier can be driven directly with a class model."""

    def test_verifier_run(self):
        table = load_source(FLAG % "X >= 0")
        result = Verifier(table["Flag"], table, VerifierConfig(max_depth=2)).run()
        assert result.is_success
        assert result.class_name == "Flag"

    def test_every_class_gets_a_result(self):
        source = (FLAG % "X >= 0") + """
class Other
{
    int Y = 1;
    invariant Y == 1;
}
"""
        results = verify_source(source, VerifierConfig(max_depth=1))
        assert [r.class_name for r in results] == ["Flag", "Other"]
        assert all(r.is_success for r in results)

    def test_result_serialises(self):
        result = run(FLAG % "X == 0", max_depth=1)
        d = result.to_dict()
        assert d["result"] == "invariant_error"
        assert d["class"] == "Flag"
        assert d["call_sequence"] == ["Toggle"]
        assert d["location"]["line"] > 0


# ===========================================================================
# VER-011: Writes made by a short-circuited operand
# ===========================================================================

TOUCH = """
class Touchy
{
    int X = 0;

    private bool Touch()
    {
        X = X;
        return true;
    }

    public void Go(int a)
    {
        if (%s) { X = X; }
    }

    invariant X == 0;
}
"""


class TestVER011:
    """VER-011: State written by a skipped right operand keeps its previous value."""

    @pytest.mark.parametrize("condition", [
        "a > 0 && Touch()",
        "Touch() && a > 0",
        "a > 0 || Touch()",
        "Touch() || a > 0",
    ])
    def test_call_in_conditional_operand(self, condition):
        assert run(TOUCH % condition, max_depth=1).is_success

    def test_skipped_write_does_not_leak(self):
        source = """
class Lazy
{
    int X = 0;

    private bool Set()
    {
        X = 1;
        return true;
    }

    public void Go(int a)
        ensure a > 0 || X == 0
    {
        if (a > 0 && Set()) { }
    }
}
"""
        assert run(source, max_depth=1).is_success


# ===========================================================================
# VER-012: Solver sessions
# ===========================================================================

class RecordingSession(Z3SolverSession):
    def __init__(self, closed_depths):
        super().__init__()
        self.closed_depths = closed_depths

    def close(self):
        self.closed_depths.append(self.depth)
        super().close()


class UnknownSession(SolverSession):
    """Gives up on every check."""

    def add(self, formula):
        pass

    def push(self):
        pass

    def pop(self):
        pass

    def check(self):
        return SolverStatus.UNKNOWN

    def model_text(self):
        return ""


class TestVER012:
    """VER-012: Scopes are balanced on every exit and UNKNOWN means Timeout."""

    @pytest.mark.parametrize("source, expected", [
        ("""
class Contradiction
{
    public void M(int x)
        require x == 0
        require x != 0
    {
    }
}
""", VerificationErrorType.REQUIRE_ERROR),
        (ECHO % "", VerificationErrorType.ENSURE_ERROR),
        (DIVIDE % ("", "/"), VerificationErrorType.ASSUME_ERROR),
    ])
    def test_scopes_balanced_after_violation(self, source, expected):
        table = load_source(source)
        cls = table.verifiable()[-1]
        closed_depths = []
        verifier = Verifier(
            cls, table, VerifierConfig(max_depth=1),
            session_factory=lambda: RecordingSession(closed_depths),
        )
        assert verifier.run().error_type == expected
        assert closed_depths
        assert all(depth == 0 for depth in closed_depths)

    def test_unknown_answer_is_a_timeout(self):
        table = load_source(FLAG % "X >= 0")
        verifier = Verifier(
            table["Flag"], table, VerifierConfig(max_depth=1),
            session_factory=UnknownSession,
        )
        result = verifier.run()
        assert result.error_type == VerificationErrorType.TIMEOUT
        assert result.is_timeout
