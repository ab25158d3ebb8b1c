"""
Tests for the Traversal Dispatcher and the top-level check.

These tests verify that:
1. Fully realized values never produce a violation
2. A single deferred cell is reported with the trail leading to it
3. Exemptions silence exactly the exempt field
4. Sums inspect only the active alternative
5. Recursive chains produce collapsed trails
6. The three outcomes (none / violation / failure) stay distinct
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, NamedTuple, Optional

import pytest

from thunkguard import (
    Thunk,
    Violation,
    allow_thunk,
    allow_thunks_in,
    assert_realized,
    check,
    check_elements,
    check_in,
    check_whnf,
    derive,
    use_normal_form,
)
from thunkguard.cells import Cell, Select, ready
from thunkguard.violation import (
    ClassificationError,
    UnexpectedDeferred,
    UnreachableAlternative,
)


# =============================================================================
# FIXTURE TYPES
# =============================================================================

@dataclass
class Payload:
    data: list[int]


@derive
@dataclass
class Record:
    a: int
    b: Thunk[Payload]


@allow_thunks_in("b")
@dataclass
class LenientRecord:
    a: int
    b: Thunk[Payload]


@dataclass
class Pair:
    first: int
    second: str


@dataclass
class Node:
    value: int
    next: Optional["Node"]


@dataclass
class Maybe:
    item: Optional[Payload]


@dataclass
class MaybeLazy:
    item: Optional[Thunk[Payload]]


@dataclass
class Base:
    x: int


@dataclass
class Child(Base):
    y: int


@dataclass
class Shelf:
    item: Base


class Point(NamedTuple):
    x: int
    y: int


@derive
class Expr:
    pass


@dataclass
class Lit(Expr):
    value: int


@dataclass
class Add(Expr):
    left: Expr
    right: Expr


class Figure:
    pass


@dataclass
class Circle(Figure):
    radius: float


@dataclass
class Square(Figure):
    side: float


@dataclass
class Triangle(Figure):
    base: float


derive(variants=(Circle, Square))(Figure)


@use_normal_form
class Opaque:
    def __init__(self, inner):
        self._inner = inner


@check_whnf(name="Handle")
class Handle:
    def __init__(self, payload):
        self.payload = payload


@allow_thunk
class Scratch:
    def __init__(self, junk):
        self.junk = junk


@check_elements(lambda bag: list(bag._items), element_type=int)
class Bag:
    """Elements must be realized; the index is lazy on purpose."""

    def __init__(self, *items):
        self._items = list(items)
        self._index = Thunk(lambda: sorted(self._items))


@dataclass
class Holder:
    callback: Callable[[], int]
    stream: Iterator[int]


@dataclass
class Stamped:
    at: datetime
    label: str


class MysteryCell(Cell):

    @property
    def kind(self):
        return "mystery"


def pending(value=1, of=None):
    return Thunk(lambda: value, of=of)


def forced(value):
    thunk = Thunk(lambda: value)
    thunk.force()
    return thunk


def chain(length, last_value):
    node = None
    for i in range(length):
        node = Node(value=last_value if i == 0 else i, next=node)
    return node


def assert_no_repeats(trail):
    for outer, inner in zip(trail, trail[1:]):
        assert outer != inner


# =============================================================================
# REALIZED VALUES
# =============================================================================

class TestRealizedValues:
    """Values with every reachable cell realized pass."""

    def test_primitives(self):
        for value in (1, 2.5, "s", b"b", None, True, datetime(2024, 1, 1)):
            assert check(value) is None

    def test_containers(self):
        assert check([1, 2, {"a": (3, frozenset({4}))}]) is None

    def test_records(self):
        assert check(Record(a=1, b=forced(Payload([1, 2])))) is None
        assert check(Pair(1, "x")) is None
        assert check(Point(1, 2)) is None

    def test_forced_cells_are_transparent(self):
        assert check(forced([forced(1), 2])) is None

    def test_sum_values(self):
        assert check(Add(Lit(1), Add(Lit(2), Lit(3)))) is None

    def test_time_values(self):
        assert check(Stamped(at=datetime(2024, 5, 1), label="x")) is None


# =============================================================================
# VIOLATION TRAILS
# =============================================================================

class TestViolationTrails:
    """A single deferred cell is located by its trail."""

    def test_top_level_deferred_with_declared_type(self):
        assert check(pending(), int) == Violation(("int",))

    def test_top_level_deferred_names_cell_type(self):
        """Without a declared type the cell's own ``of`` names it."""
        assert check(pending(of=Payload)) == Violation(("Payload",))
        assert check(pending()) == Violation(("Thunk",))

    def test_native_generator_named_after_itself(self):
        assert check([1, (i for i in range(2))]) == Violation(("generator", "list"))

    def test_field_in_record(self):
        violation = check(Pair(first=1, second=pending("late")))

        assert violation.trail == ("str", "Pair")

    def test_nested_element(self):
        violation = check(Payload(data=[1, pending(), 3]))

        assert violation.trail == ("int", "list", "Payload")
        assert violation.innermost == "int"

    def test_first_violation_wins(self):
        """Fields are checked in declared order and checking stops early."""
        violation = check(Pair(first=pending(), second=pending("x")))

        assert violation.trail == ("int", "Pair")

    def test_check_does_not_force(self):
        thunk = Thunk(lambda: 1 / 0)

        assert check(Pair(first=thunk, second="x")) is not None
        assert not thunk.is_forced

    def test_selector_cell(self):
        source = Pair(first=1, second="s")

        violation = check(Maybe(item=Select(source, "second")))

        assert violation.trail == ("Optional[Payload]", "Maybe")

    def test_positional_tuple(self):
        assert check((1, pending("s")), tuple[int, str]).trail == ("str", "tuple")
        assert check((1, 2, pending()), tuple[int, ...]).trail == ("int", "tuple")

    def test_subclass_in_base_typed_field(self):
        """Fields added by a subclass are checked too."""
        assert check(Shelf(item=Child(1, 2))) is None
        assert check(Shelf(item=Child(1, pending()))).trail == ("int", "Base", "Shelf")
        assert check(Shelf(item=Base(pending()))).trail == ("int", "Base", "Shelf")

    def test_named_tuple(self):
        assert check(Point(1, pending())).trail == ("int", "Point")

    def test_check_in_extends_given_context(self):
        violation = check_in(["Outer"], pending(), int)

        assert violation.trail == ("int", "Outer")

    def test_violation_renders_trail(self):
        violation = check(Payload(data=[pending()]))

        assert violation.describe() == "int <- list <- Payload"
        assert "unexpected deferred int" in str(violation)


# =============================================================================
# EXEMPTIONS
# =============================================================================

class TestExemptions:
    """Exempt fields are skipped; siblings are still checked."""

    def test_exempt_record_passes(self):
        """{a: int, b: deferred} with b exempt -> no violation."""
        value = LenientRecord(a=1, b=pending(Payload([1])))

        assert check(value) is None

    def test_same_value_without_exemption_fails(self):
        """Removing the exemption for b reports b's type."""
        value = Record(a=1, b=pending(Payload([1])))

        assert check(value).trail == ("Payload", "Record")

    def test_sibling_still_checked(self):
        value = LenientRecord(a=pending(), b=pending(Payload([1])))

        assert check(value).trail == ("int", "LenientRecord")

    def test_exemption_is_per_field_not_per_value(self):
        """An exempt field's contents are skipped, but only that field."""
        value = LenientRecord(a=1, b=forced(Payload([pending()])))

        assert check(value) is None


# =============================================================================
# SUMS
# =============================================================================

class TestSums:
    """Only the active alternative is inspected."""

    def test_violation_inside_alternative(self):
        violation = check(Add(Lit(1), Lit(pending())))

        assert violation.trail == ("int", "Expr")

    def test_deferred_alternative(self):
        """A deferred subtree of the same sum collapses into its parent frame."""
        violation = check(Add(Lit(1), pending(Lit(2))))

        assert violation.trail == ("Expr",)

    def test_closed_sum_accepts_its_variants(self):
        assert check(Circle(1.0)) is None
        assert check(Square(pending(2.0))).trail == ("float", "Figure")

    def test_impossible_alternative_is_an_assertion(self):
        with pytest.raises(UnreachableAlternative) as excinfo:
            check(Triangle(1.0))

        assert isinstance(excinfo.value, AssertionError)

    def test_optional_lazy_field(self):
        """Optional[Thunk[T]] matches the value a forced cell holds."""
        assert check(MaybeLazy(item=None)) is None
        assert check(MaybeLazy(item=forced(Payload([1])))) is None
        assert check(MaybeLazy(item=forced(Payload([pending()])))).trail == (
            "int", "list", "Payload", "MaybeLazy",
        )

        violation = check(MaybeLazy(item=pending(Payload([1]))))
        assert violation.outermost == "MaybeLazy"
        assert violation.innermost.startswith("Optional[")

    def test_optional_none_and_present(self):
        assert check(Maybe(item=None)) is None
        assert check(Maybe(item=Payload([1]))) is None
        assert check(Maybe(item=Payload([pending()]))).trail == (
            "int", "list", "Payload", "Maybe",
        )


# =============================================================================
# RECURSIVE CHAINS
# =============================================================================

class TestSelfRecursionCollapse:
    """Homogeneous chains never repeat a frame."""

    @pytest.mark.parametrize("length", [3, 5, 20])
    def test_chain_trail_is_collapsed(self, length):
        violation = check(chain(length, pending()))

        assert violation.trail == ("int", "Node")
        assert_no_repeats(violation.trail)

    def test_realized_chain_passes(self):
        assert check(chain(10, 0)) is None

    def test_nested_lists_collapse(self):
        violation = check([[[1]], [[2], [pending()]]], list[list[list[int]]])

        assert violation.trail == ("int", "list")


# =============================================================================
# MAPPINGS
# =============================================================================

class TestMappings:
    """Keys and values of mappings are checked, the mapping is named."""

    def test_second_value_deferred(self):
        entries = {
            "a": Payload([1]),
            "b": pending(Payload([2])),
            "c": Payload([3]),
        }

        violation = check(entries, dict[str, Payload])

        assert violation.trail[:2] == ("Payload", "dict")

    def test_second_value_realized(self):
        entries = {
            "a": Payload([1]),
            "b": pending(Payload([2])),
            "c": Payload([3]),
        }
        entries["b"].force()

        assert check(entries, dict[str, Payload]) is None

    def test_key_ordered_mapping_is_named(self):
        entries = OrderedDict(sorted({"x": 1, "y": pending(), "z": 3}.items()))

        assert check(entries, OrderedDict[str, int]).trail == ("int", "OrderedDict")

    def test_deferred_key(self):
        assert check({pending("k"): 1}, dict[str, int]).trail == ("str", "dict")

    def test_untyped_mapping(self):
        assert check({"a": pending()}).trail == ("Thunk", "dict")


# =============================================================================
# PARTICIPATION MODES
# =============================================================================

class TestParticipationModes:
    """Each participation mode checks what it declares and nothing more."""

    def test_normal_form_reports_ellipsis(self):
        assert check(Opaque([1, 2])) is None
        assert check(Opaque([1, pending()])).trail == ("...", "Opaque")

    def test_whnf_ignores_contents(self):
        assert check(Handle(pending())) is None
        assert check(pending(Handle(1)), Handle).trail == ("Handle",)

    def test_allow_thunk_never_fails(self):
        assert check(pending(Scratch(1)), Scratch) is None
        assert check(Scratch(pending())) is None

    def test_elements_only(self):
        """The lazy index is not inspected; the elements are."""
        assert check(Bag(1, 2)) is None
        assert check(Bag(1, pending())).trail == ("int", "Bag")

    def test_functions_are_not_inspected(self):
        captured = pending()
        holder = Holder(callback=lambda: captured.force(), stream=iter(()))

        assert check(holder) is None

    def test_live_iterator_field(self):
        holder = Holder(callback=len, stream=(i for i in range(3)))

        assert check(holder).trail == ("Iterator", "Holder")


# =============================================================================
# OUTCOMES
# =============================================================================

class TestOutcomes:
    """No violation, violation and failure are distinct outcomes."""

    def test_classification_failure_propagates(self):
        with pytest.raises(ClassificationError):
            check(Pair(first=MysteryCell(), second="x"))

    def test_assert_realized_raises_with_violation(self):
        with pytest.raises(UnexpectedDeferred) as excinfo:
            assert_realized(Payload([pending()]))

        assert excinfo.value.violation.trail == ("int", "list", "Payload")

    def test_assert_realized_passes(self):
        assert_realized(Payload([1]))

    def test_fresh_context_per_call(self):
        first = check(Pair(first=pending(), second="x"))
        second = check(Pair(first=pending(), second="x"))

        assert first == second

    def test_concurrent_checks_agree(self):
        """Overlapping graphs can be checked from several threads."""
        shared = Payload([1, ready(2), pending()])
        results = []

        def worker():
            results.append(check(shared))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(r.trail == ("int", "list", "Payload") for r in results)
