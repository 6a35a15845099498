import pytest

from testsupport.stub import Stub, StubCall


class StubA:
    def __init__(self, stub):
        self.stub = stub

    def a_method(self, a, b, c):
        self.stub.method_call(self, "aMethod", a, b, c)
        return self.stub.next_err()

    def other_method(self, *values):
        self.stub.method_call(self, "otherMethod", list(values))
        return self.stub.next_err()


class StubB:
    def __init__(self, stub):
        self.stub = stub

    def a_method(self):
        self.stub.method_call(self, "aMethod")
        return self.stub.next_err()

    def a_func(self, value):
        self.stub.add_call("aFunc", value)
        return self.stub.next_err()


@pytest.fixture
def stub():
    return Stub()


def test_next_err_sequence(stub):
    exp1 = ValueError("<failure 1>")
    exp2 = ValueError("<failure 2>")
    stub.set_errors(exp1, exp2)
    assert stub.next_err() is exp1
    assert stub.next_err() is exp2


def test_next_err_pops(stub):
    exp1 = ValueError("<failure 1>")
    exp2 = ValueError("<failure 2>")
    stub.set_errors(exp1, exp2)
    stub.next_err()
    assert stub.check_errors(exp2) is True


def test_next_err_empty_none(stub):
    assert stub.next_err() is None
    assert stub.next_err() is None


def test_next_err_skip(stub):
    expected = ValueError("<failure>")
    stub.set_errors(None, None, expected)
    assert stub.next_err() is None
    assert stub.next_err() is None
    assert stub.next_err() is expected


def test_next_err_embedded_mixed(stub):
    exp1 = ValueError("<failure 1>")
    exp2 = ValueError("<failure 2>")
    stub.set_errors(exp1, None, None, exp2)
    stub1 = StubA(stub)
    stub2 = StubB(stub)
    assert stub1.a_method(1, 2, 3) is exp1
    assert stub2.a_func("arg") is None
    assert stub1.other_method("arg1", "arg2") is None
    assert stub2.a_method() is exp2


def test_pop_no_err_okay(stub):
    exp1 = ValueError("<failure 1>")
    exp2 = ValueError("<failure 2>")
    stub.set_errors(exp1, None, exp2)
    err1 = stub.next_err()
    stub.pop_no_err()
    err2 = stub.next_err()
    assert err1 is exp1
    assert err2 is exp2


def test_pop_no_err_empty(stub):
    stub.pop_no_err()
    assert stub.next_err() is None


def test_pop_no_err_raises(stub):
    stub.set_errors(ValueError("<failure>"))
    with pytest.raises(RuntimeError, match=r"expected a nil error, got .*"):
        stub.pop_no_err()


def test_add_call_recorded(stub):
    stub.add_call("aFunc", 1, 2, 3)
    assert stub.calls() == [StubCall("aFunc", (1, 2, 3))]
    assert stub.check_receivers(None) is True


def test_add_call_repeated(stub):
    stub.add_call("before", "arg")
    stub.add_call("aFunc", 1, 2, 3)
    stub.add_call("aFunc", 4, 5, 6)
    stub.add_call("after", "arg")
    assert stub.calls() == [
        StubCall("before", ("arg",)),
        StubCall("aFunc", (1, 2, 3)),
        StubCall("aFunc", (4, 5, 6)),
        StubCall("after", ("arg",)),
    ]
    assert stub.check_receivers(None, None, None, None) is True


def test_add_call_no_args(stub):
    stub.add_call("aFunc")
    assert stub.calls() == [StubCall("aFunc")]


def test_reset_calls(stub):
    stub.add_call("aFunc")
    stub.check_calls([StubCall("aFunc")])
    stub.reset_calls()
    stub.check_calls(None)
    assert stub.calls() == []


def test_calls_returns_copy(stub):
    stub.add_call("aFunc")
    calls = stub.calls()
    calls.clear()
    assert stub.calls() == [StubCall("aFunc")]


def test_add_call_sequence(stub):
    stub.add_call("first")
    stub.add_call("second")
    stub.add_call("third")
    assert stub.calls() == [StubCall("first"), StubCall("second"), StubCall("third")]


def test_method_call_recorded(stub):
    stub.method_call(stub, "aMethod", 1, 2, 3)
    assert stub.calls() == [StubCall("aMethod", (1, 2, 3))]
    assert stub.check_receivers(stub) is True


def test_method_call_mixed(stub):
    stub.method_call(stub, "Method1", 1, 2, 3)
    stub.add_call("aFunc", "arg")
    stub.method_call(stub, "Method2")
    stub.check_calls(
        [
            StubCall("Method1", (1, 2, 3)),
            StubCall("aFunc", ("arg",)),
            StubCall("Method2"),
        ]
    )
    assert stub.check_receivers(stub, None, stub) is True


def test_method_call_embedded_mixed(stub):
    stub1 = StubA(stub)
    stub2 = StubB(stub)
    assert stub1.a_method(1, 2, 3) is None
    assert stub2.a_func("arg") is None
    assert stub1.other_method("arg1", "arg2") is None
    assert stub2.a_method() is None
    assert stub.calls() == [
        StubCall("aMethod", (1, 2, 3)),
        StubCall("aFunc", ("arg",)),
        StubCall("otherMethod", (["arg1", "arg2"],)),
        StubCall("aMethod"),
    ]
    assert stub.check_receivers(stub1, None, stub1, stub2) is True


def test_set_errors_multiple(stub):
    err1 = ValueError("<failure 1>")
    err2 = ValueError("<failure 2>")
    stub.set_errors(err1, err2)
    assert stub.check_errors(err1, err2) is True


def test_set_errors_empty(stub):
    stub.set_errors()
    assert stub.check_errors() is True


def test_set_error_mixed(stub):
    err1 = ValueError("<failure 1>")
    err2 = ValueError("<failure 2>")
    stub.set_errors(None, err1, None, err2)
    assert stub.check_errors(None, err1, None, err2) is True


def test_set_errors_trailing_none(stub):
    err = ValueError("<failure 1>")
    stub.set_errors(err, None)
    assert stub.check_errors(err, None) is True


def test_check_errors_mismatch(stub):
    err = ValueError("<failure 1>")
    stub.set_errors(err)
    with pytest.raises(AssertionError):
        stub.check_errors()
    assert stub.check_errors(err) is True


def test_check_receivers_mismatch(stub):
    stub.method_call(stub, "aMethod")
    with pytest.raises(AssertionError):
        stub.check_receivers(None)
    assert stub.check_receivers(stub) is True


STANDARD_CALLS = [
    StubCall("first", ("arg",)),
    StubCall("second", (1, 2, 3)),
    StubCall("third"),
]


def test_check_calls_pass(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 3)
    stub.add_call("third")
    stub.check_calls(STANDARD_CALLS)
    assert stub.calls() == STANDARD_CALLS


def test_check_calls_empty(stub):
    stub.check_calls(None)
    assert stub.calls() == []


def test_check_calls_missing_call(stub):
    stub.add_call("first", "arg")
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_calls(STANDARD_CALLS)
    assert stub.calls() == [StubCall("first", ("arg",)), StubCall("third")]


def test_check_calls_wrong_name(stub):
    stub.add_call("first", "arg")
    stub.add_call("oops", 1, 2, 3)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_calls(STANDARD_CALLS)
    assert stub.check_call_names("first", "oops", "third") is True


def test_check_calls_wrong_args(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 4)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_calls(STANDARD_CALLS)
    assert stub.calls()[1] == StubCall("second", (1, 2, 4))


def _check_call_standard(stub):
    stub.check_call(0, "first", "arg")
    stub.check_call(1, "second", 1, 2, 3)
    stub.check_call(2, "third")


def test_check_call_pass(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 3)
    stub.add_call("third")
    _check_call_standard(stub)
    assert len(stub.calls()) == 3


def test_check_call_empty(stub):
    with pytest.raises(AssertionError):
        stub.check_call(0, "aMethod")
    assert stub.calls() == []


def test_check_call_missing_call(stub):
    stub.add_call("first", "arg")
    stub.add_call("third")
    with pytest.raises(AssertionError):
        _check_call_standard(stub)
    assert stub.calls() == [StubCall("first", ("arg",)), StubCall("third")]


def test_check_call_wrong_name(stub):
    stub.add_call("first", "arg")
    stub.add_call("oops", 1, 2, 3)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        _check_call_standard(stub)
    assert stub.calls()[1] == StubCall("oops", (1, 2, 3))


def test_check_call_wrong_args(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 4)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        _check_call_standard(stub)
    assert stub.calls()[1] == StubCall("second", (1, 2, 4))


def test_check_call_names_pass(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 4)
    stub.add_call("third")
    assert stub.check_call_names("first", "second", "third") is True


def test_check_call_names_unexpected(stub):
    stub.add_call("first", "arg")
    stub.add_call("second", 1, 2, 4)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_call_names()
    assert len(stub.calls()) == 3


def test_check_call_names_empty_pass(stub):
    assert stub.check_call_names() is True


def test_check_call_names_empty_fail(stub):
    with pytest.raises(AssertionError):
        stub.check_call_names("aMethod")
    assert stub.calls() == []


def test_check_call_names_missing_call(stub):
    stub.add_call("first", "arg")
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_call_names("first", "second", "third")
    assert stub.check_call_names("first", "third") is True


def test_check_call_names_wrong_name(stub):
    stub.add_call("first", "arg")
    stub.add_call("oops", 1, 2, 4)
    stub.add_call("third")
    with pytest.raises(AssertionError):
        stub.check_call_names("first", "second", "third")
    assert stub.check_call_names("first", "oops", "third") is True


def test_check_no_calls(stub):
    stub.check_no_calls()
    stub.add_call("method", "arg")
    with pytest.raises(AssertionError):
        stub.check_no_calls()
    assert stub.calls() == [StubCall("method", ("arg",))]


def test_method_calls_unordered(stub):
    stub.method_call(stub, "Method1", 1, 2, 3)
    stub.add_call("aFunc", "arg")
    stub.method_call(stub, "Method2")
    stub.check_calls_unordered(
        [
            StubCall("aFunc", ("arg",)),
            StubCall("Method1", (1, 2, 3)),
            StubCall("Method2"),
        ]
    )
    assert len(stub.calls()) == 3


def test_method_calls_unordered_duplicate_fail(stub):
    stub.method_call(stub, "Method1", 1, 2, 3)
    stub.method_call(stub, "Method1", 1, 2, 3)
    stub.add_call("aFunc", "arg")
    stub.method_call(stub, "Method2")
    with pytest.raises(AssertionError):
        stub.check_calls_unordered(
            [
                StubCall("aFunc", ("arg",)),
                StubCall("Method1", (1, 2, 3)),
                StubCall("Method2"),
                StubCall("Method2"),
            ]
        )
    assert len(stub.calls()) == 4


def test_check_calls_unordered_leaves_calls_intact(stub):
    stub.add_call("a")
    stub.add_call("b")
    stub.check_calls_unordered([StubCall("b"), StubCall("a")])
    assert stub.calls() == [StubCall("a"), StubCall("b")]


def test_stub_call_args_normalised_to_tuple():
    assert StubCall("f", [1, 2]) == StubCall("f", (1, 2))