import functools
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tether import (  # noqa: E402
    NONE,
    ArityMismatch,
    BridgeError,
    FatalPrecondition,
    SignatureDescriptor,
    UnsupportedType,
    VBool,
    VCallable,
    VFloat,
    VInt,
    VList,
    VRecord,
    VString,
    VTuple,
    VUint,
    coerce,
    invoke,
    make_callable,
    make_list,
    make_set,
    make_tuple,
    to_value,
)


@dataclass
class Point:
    x: int
    y: int


def divide(a: int, b: int) -> tuple[float, Exception | None]:
    if b == 0:
        return 0.0, ZeroDivisionError("division by zero")
    return a / b, None


def test_signature_descriptor_from_annotations():
    sig = SignatureDescriptor.from_callable(divide)
    assert sig.arity == 2
    assert sig.result_count == 1
    assert sig.returns_error
    assert sig.to_dict() == {
        "name": "divide",
        "params": ["int", "int"],
        "results": ["float"],
        "returns_error": True,
    }


def test_invoke_returns_result_and_nil_error():
    fn = make_callable(divide)
    assert isinstance(fn, VCallable)
    assert fn.name == "divide"

    value, err = invoke(fn, [VInt(6), VInt(3)])
    assert value == VFloat(2.0)
    assert err is None


def test_invoke_surfaces_error_slot_alongside_result():
    value, err = invoke(make_callable(divide), [VInt(6), VInt(0)])
    assert value == VFloat(0.0)
    assert isinstance(err, ZeroDivisionError)
    assert str(err) == "division by zero"


def test_single_result_is_never_wrapped_in_a_tuple():
    def double(x: int) -> list[int]:
        return [x, x]

    value, err = invoke(make_callable(double), [VInt(4)])
    assert value == VList([VInt(4), VInt(4)])
    assert err is None


def test_multiple_results_pack_into_a_tuple_in_order():
    def triple() -> tuple[int, str, bool]:
        return 1, "a", True

    value, err = invoke(make_callable(triple), [])
    assert isinstance(value, VTuple)
    assert value == VTuple((VInt(1), VString("a"), VBool(True)))
    assert err is None


def test_procedures_return_none_sentinel():
    calls = []

    def note(msg: str) -> None:
        calls.append(msg)

    value, err = invoke(make_callable(note), [VString("hello")])
    assert value is NONE
    assert err is None
    assert calls == ["hello"]


def test_error_only_return():
    def check(x: int) -> ValueError | None:
        if x < 0:
            return ValueError("negative")
        return None

    fn = make_callable(check)
    assert fn.signature.result_count == 0
    assert fn.signature.returns_error

    assert invoke(fn, [VInt(1)]) == (NONE, None)
    value, err = invoke(fn, [VInt(-1)])
    assert value is NONE
    assert isinstance(err, ValueError)


def test_arity_mismatch_skips_the_native_call():
    calls = []

    def note(msg: str) -> None:
        calls.append(msg)

    with pytest.raises(ArityMismatch) as excinfo:
        invoke(make_callable(note), [VString("a"), VString("b")])
    assert excinfo.value.expected == 1
    assert excinfo.value.actual == 2
    assert str(excinfo.value) == "note: expected 1 args but got 2"
    assert isinstance(excinfo.value, BridgeError)
    assert calls == []


def test_arguments_are_coerced_to_declared_widths():
    seen = []

    def narrow(x: np.int8, y: float, z: np.uint16) -> int:
        seen.extend([type(x), type(y), type(z)])
        return int(x) + int(z)

    value, _ = invoke(make_callable(narrow), [VInt(5), VInt(2), VUint(7)])
    assert value == VInt(12)
    assert seen == [np.int8, float, np.uint16]


def test_out_of_range_width_is_fatal():
    def narrow(x: np.int8) -> int:
        return int(x)

    with pytest.raises(FatalPrecondition):
        invoke(make_callable(narrow), [VInt(300)])


def test_inconvertible_argument_is_fatal_not_reported():
    def shout(s: str) -> str:
        return s.upper()

    with pytest.raises(FatalPrecondition) as excinfo:
        invoke(make_callable(shout), [VInt(1)])
    assert not isinstance(excinfo.value, BridgeError)
    assert "shout: argument 0" in str(excinfo.value)


def test_container_parameters_are_coerced():
    def pair(p: tuple[int, str]) -> str:
        assert type(p) is tuple
        assert type(p[0]) is int
        return p[1] * p[0]

    value, _ = invoke(make_callable(pair), [make_list([2, "ab"])])
    assert value == VString("abab")

    def total(xs: list[float]) -> float:
        assert all(type(x) is float for x in xs)
        return sum(xs)

    value, _ = invoke(make_callable(total), [make_list([1, 2, 3])])
    assert value == VFloat(6.0)

    def lengths(d: dict[str, int]) -> list[str]:
        return sorted(k for k, v in d.items() if v > 1)

    value, _ = invoke(make_callable(lengths), [to_value({"a": 1, "b": 2})])
    assert value == VList([VString("b")])

    def members(s: frozenset[str]) -> int:
        assert isinstance(s, frozenset)
        return len(s)

    value, _ = invoke(make_callable(members), [make_set({"x", "y"})])
    assert value == VInt(2)


def test_fixed_tuple_parameter_length_mismatch_is_fatal():
    def pair(p: tuple[int, str]) -> str:
        return p[1]

    with pytest.raises(FatalPrecondition):
        invoke(make_callable(pair), [make_list([1, "a", 2])])


def test_optional_and_record_parameters():
    def maybe(x: int | None = None) -> int:
        return 0 if x is None else x

    fn = make_callable(maybe)
    assert fn.arity == 1
    assert invoke(fn, [VInt(3)])[0] == VInt(3)

    def norm(p: Point) -> int:
        return p.x + p.y

    assert invoke(make_callable(norm), [to_value(Point(1, 2))])[0] == VInt(3)


def test_callable_parameters_receive_callable_handles():
    def inc(n: int) -> int:
        return n + 1

    def apply(f: Callable[[int], int], x: int) -> int:
        return f(x)

    value, _ = invoke(make_callable(apply), [to_value(inc), VInt(1)])
    assert value == VInt(2)


def test_functions_returning_functions_and_records():
    def adder(n: int):
        def add(m: int) -> int:
            return n + m

        return add

    inner, _ = invoke(make_callable(adder), [VInt(10)])
    assert isinstance(inner, VCallable)
    assert invoke(inner, [VInt(5)])[0] == VInt(15)

    def origin() -> Point:
        return Point(0, 0)

    rec, _ = invoke(make_callable(origin), [])
    assert isinstance(rec, VRecord)
    assert rec.unwrap() == Point(0, 0)


def test_unannotated_callables():
    def loose(a, b):
        return a

    value, _ = invoke(make_callable(loose), [VString("x"), VInt(1)])
    assert value == VString("x")

    def quiet():
        pass

    assert invoke(make_callable(quiet), []) == (NONE, None)


def test_wrap_requires_a_function():
    for bad in (5, "text", Point):
        with pytest.raises(FatalPrecondition):
            make_callable(bad)


def test_variadic_and_keyword_only_parameters():
    with pytest.raises(FatalPrecondition):
        make_callable(lambda *args: args)
    with pytest.raises(FatalPrecondition):
        make_callable(lambda **kwargs: kwargs)

    def needs_kw(a: int, *, b: int) -> int:
        return a + b

    with pytest.raises(FatalPrecondition):
        make_callable(needs_kw)

    def has_kw(a: int, *, b: int = 2) -> int:
        return a + b

    fn = make_callable(has_kw)
    assert fn.arity == 1
    assert invoke(fn, [VInt(1)])[0] == VInt(3)


def test_explicit_signature_for_builtins():
    with pytest.raises(FatalPrecondition):
        make_callable(max)

    sig = SignatureDescriptor("max", (int, int), (int,))
    fn = make_callable(max, signature=sig)
    assert fn.name == "max"
    assert invoke(fn, [VInt(3), VInt(9)]) == (VInt(9), None)


def test_partials_bound_methods_and_callable_objects():
    fn = make_callable(functools.partial(divide, 6))
    assert fn.name == "fn"
    assert fn.arity == 1
    assert invoke(fn, [VInt(2)])[0] == VFloat(3.0)

    class Counter:
        def __init__(self):
            self.count = 0

        def add(self, n: int) -> int:
            self.count += n
            return self.count

        def __call__(self, n: int) -> bool:
            return n == self.count

    counter = Counter()
    add = make_callable(counter.add)
    assert add.arity == 1
    assert invoke(add, [VInt(4)])[0] == VInt(4)

    check = to_value(counter)
    assert isinstance(check, VCallable)
    assert invoke(check, [VInt(4)])[0] == VBool(True)


def test_invoke_accepts_runtime_tuples_and_method_form():
    fn = make_callable(divide)
    value, err = fn.invoke(make_tuple([9, 3]))
    assert value == VFloat(3.0)
    assert err is None
    assert fn(9, 3) == (3.0, None)


def test_declared_result_shape_is_enforced():
    def short() -> tuple[int, int]:
        return (1,)

    with pytest.raises(FatalPrecondition):
        invoke(make_callable(short), [])

    def weird() -> tuple[int, Exception | None]:
        return 1, "oops"

    with pytest.raises(FatalPrecondition):
        invoke(make_callable(weird), [])


def test_result_encoding_failures_are_reported():
    def nothing() -> int:
        return None

    with pytest.raises(UnsupportedType):
        invoke(make_callable(nothing), [])


def test_native_exceptions_propagate():
    def boom() -> int:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        invoke(make_callable(boom), [])


def test_coerce_passes_through_dynamic_annotations():
    marker = object()
    assert coerce(marker, object) is marker
    assert coerce(np.int64(3), int) == 3
    assert type(coerce(np.int64(3), int)) is int
    assert coerce([1, 2], set[int]) == {1, 2}


def test_unannotated_tuple_return_is_a_single_list_result():
    def both(a, b):
        return a, b

    value, err = invoke(make_callable(both), [VInt(1), VString("x")])
    assert value == VList([VInt(1), VString("x")])
    assert err is None
