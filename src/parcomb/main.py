"""
The implementations of the main classes and combinators.
"""

from __future__ import annotations
from typing import overload, Any, Self, Literal, TypeVar, Generic, Final, Callable, Union

from collections.abc import Sequence, Iterator, Iterable
import inspect
import logging

import parcomb.const as const


log = logging.getLogger("parcomb")


_T = TypeVar("_T")
_TokenT = TypeVar("_TokenT")
_OutputT = TypeVar("_OutputT")
_OtherT = TypeVar("_OtherT")
_NewT = TypeVar("_NewT")
_OutputCovT = TypeVar("_OutputCovT", covariant=True)



def display(value: object) -> str:
    """Renders a token or a label for diagnostics. Whitespace tokens are shown by name."""
    if isinstance(value, str):
        return const.WHITESPACE_NAMES.get(value, value)
    return str(value)

def display_list(items: Sequence[object], empty: str) -> str:
    """
    Renders a list of tokens or labels.

    `[]` -> `empty`, `[a]` -> `a`, `[a, b]` -> `a or b`, `[a, b, c]` -> `a, b, and c`
    """
    names = [display(item) for item in items]
    if len(names) == 0:
        return empty
    elif len(names) == 1:
        return names[0]
    elif len(names) == 2:
        return f"{names[0]} or {names[1]}"
    else:
        return ", ".join(names[:-1]) + f", and {names[-1]}"

def _unique(items: Iterable[object]) -> tuple[object, ...]:
    unique: list[object] = []
    seen: set[object] = set()
    for item in items:
        try:
            if item in seen:
                continue
            seen.add(item)
        except TypeError:
            # tokens aren't required to be hashable
            if item in unique:
                continue
        unique.append(item)
    return tuple(unique)



class EndOfInput:
    """
    Marks the end of the input.

    Used both as an expected descriptor (trailing input was found) and as an actual descriptor (the input ran out).
    """
    def __eq__(self, other: object) -> bool:
        return isinstance(other, EndOfInput)

    def __hash__(self) -> int:
        return hash(EndOfInput)

    def __repr__(self) -> str:
        return "END_OF_INPUT"

    def __str__(self) -> str:
        return "end of input"

class FailMarker:
    """The actual descriptor of a failure produced by `Parser.fail()`."""
    def __eq__(self, other: object) -> bool:
        return isinstance(other, FailMarker)

    def __hash__(self) -> int:
        return hash(FailMarker)

    def __repr__(self) -> str:
        return "FAIL"

    def __str__(self) -> str:
        return "usage of fail()"

END_OF_INPUT: Final[EndOfInput] = EndOfInput()
FAIL: Final[FailMarker] = FailMarker()


class OneOf:
    """
    Expected descriptor: any one of the listed tokens or labels would have matched.

    The items are kept in order of first appearance, without duplicates.
    """
    def __init__(self, items: Iterable[object]) -> None:
        self.items: Final[tuple[object, ...]] = _unique(items)

    def merge(self, other: Self) -> Self:
        """Unions the items of both descriptors. Used by the choice combinator."""
        return type(self)(self.items + other.items)

    def __eq__(self, other: object) -> bool:
        # order only matters for rendering
        return (
            type(self) is type(other)
            and all(item in other.items for item in self.items)     # type: ignore[attr-defined]
            and all(item in self.items for item in other.items)     # type: ignore[attr-defined]
        )

    def __hash__(self) -> int:
        return hash((type(self), len(self.items)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.items)!r})"

    def __str__(self) -> str:
        return display_list(self.items, "end of input")

class NoneOf:
    """
    Expected descriptor: anything except the listed tokens or labels would have matched.
    """
    def __init__(self, items: Iterable[object]) -> None:
        self.items: Final[tuple[object, ...]] = _unique(items)

    def merge(self, other: Self) -> Self:
        """Unions the items of both descriptors. Used by the choice combinator."""
        return type(self)(self.items + other.items)

    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and all(item in other.items for item in self.items)     # type: ignore[attr-defined]
            and all(item in self.items for item in other.items)     # type: ignore[attr-defined]
        )

    def __hash__(self) -> int:
        return hash((type(self), len(self.items)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.items)!r})"

    def __str__(self) -> str:
        if not self.items:
            return "anything"
        return "none of " + display_list(self.items, "")

Expected = Union[None, EndOfInput, OneOf, NoneOf]



class TokenStream(Sequence[_TokenT]):
    """
    An immutable view of the input, starting from a position.

    Acts as the sequence of the remaining tokens. (`len()`, indexing and iteration are relative to `pos`.)

    Advancing creates a new view without copying the input.
    """
    def __init__(self, src: Sequence[_TokenT], pos: int = 0) -> None:
        self.src: Final[Sequence[_TokenT]] = src
        """The whole input that's being parsed."""
        self.pos: Final[int] = pos
        """The position of the first remaining token."""

    def __len__(self) -> int:
        return len(self.src) - self.pos

    @overload
    def __getitem__(self, key: int) -> _TokenT: ...
    @overload
    def __getitem__(self, key: slice) -> Sequence[_TokenT]: ...

    def __getitem__(self, key: int | slice) -> _TokenT | Sequence[_TokenT]:
        if isinstance(key, slice):
            return self.rest()[key]
        if key < 0:
            key += len(self)
        if not 0 <= key < len(self):
            raise IndexError("token stream index out of range")
        return self.src[self.pos + key]

    def __iter__(self) -> Iterator[_TokenT]:
        for i in range(self.pos, len(self.src)):
            yield self.src[i]

    def is_eof(self) -> bool:
        """Whether there are no tokens left."""
        return self.pos >= len(self.src)

    def peek(self) -> _TokenT | EndOfInput:
        """The next token, or `END_OF_INPUT`."""
        if self.is_eof():
            return END_OF_INPUT
        return self.src[self.pos]

    def advance(self, amount: int = 1) -> TokenStream[_TokenT]:
        """Returns the view that starts `amount` tokens later."""
        return TokenStream(self.src, min(self.pos + amount, len(self.src)))

    def rest(self) -> Sequence[_TokenT]:
        """The remaining tokens, as a slice of the input. (A `str` for string input.)"""
        return self.src[self.pos:]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenStream):
            return NotImplemented
        return self.pos == other.pos and (self.src is other.src or self.src == other.src)

    def __hash__(self) -> int:
        return hash(self.pos)

    def __repr__(self) -> str:
        return f"TokenStream({self.rest()!r}, pos={self.pos})"

def display_actual(actual: object) -> str:
    """Renders an actual descriptor: a marker, a single token, or the trailing tokens."""
    if isinstance(actual, TokenStream):
        if isinstance(actual.src, str):
            return display(actual.rest())
        return " ".join(display(token) for token in actual)
    return display(actual)



class Success(Generic[_OutputCovT]):
    """
    When returned from a parser, indicates that it has succeeded.

    ```
    result = parser.run(stream, context)
    if result:
        result.output       # the produced value
        result.remainder    # the unconsumed input
    else:
        ...                 # `result` is a `ParseError`
    ```
    """
    def __init__(self, output: _OutputCovT, remainder: TokenStream[Any]) -> None:
        self.output: Final[_OutputCovT] = output
        self.remainder: Final[TokenStream[Any]] = remainder

    def __bool__(self) -> Literal[True]:
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Success):
            return NotImplemented
        return self.output == other.output and self.remainder == other.remainder

    def __hash__(self) -> int:
        return hash(self.remainder)

    def __repr__(self) -> str:
        return f"Success({self.output!r}, pos={self.remainder.pos})"

class ParseError(Exception):
    """
    When returned from a parser, indicates that it has failed.

    Combinators never raise it. It's an exception only so that callers can raise it if they want to. (See `Parser.parse_or_raise()`)

    `str()` renders the one line diagnostic:
    - `expected <expected>, but found <actual>`
    - `unexpected <actual>` (if nothing specific was expected)
    """

    def __init__(self, expected: Expected, actual: object, remainder: TokenStream[Any]) -> None:
        """
        `expected`: What would have allowed the parser to succeed. `None` if unknown.
        `actual`: What was found instead. `FAIL`, `END_OF_INPUT`, a token, or a `TokenStream` of trailing tokens.
        `remainder`: The input at the exact position of the mismatch.
        """
        super().__init__(expected, actual, remainder)
        self.expected: Final[Expected] = expected
        self.actual: Final[object] = actual
        self.remainder: Final[TokenStream[Any]] = remainder

    @property
    def position(self) -> int:
        """The position of the mismatch in the input."""
        return self.remainder.pos

    @property
    def message(self) -> str:
        actual = display_actual(self.actual)
        if self.expected is None:
            return f"unexpected {actual}"
        return f"expected {self.expected}, but found {actual}"

    def location(self) -> tuple[int, int] | None:
        """The 1-based line and column of the mismatch. `None` unless the input is a string."""
        src = self.remainder.src
        if not isinstance(src, str):
            return None
        pos = min(self.position, len(src))
        # should still work with CRLF
        line = src.count("\n", 0, pos) + 1
        column = pos - src.rfind("\n", 0, pos) # magically works even when it returns -1
        return (line, column)

    def with_position_note(self) -> Self:
        """Adds a note with the position (and for strings, the offending line) to show when raised."""
        note: list[str] = [f"At position {self.position}"]
        if (location := self.location()) is not None:
            line, column = location
            note[0] += f" (line {line}, column {column})"
            # same line model as `location()`
            lines = str(self.remainder.src).split("\n")
            if len(lines) > line-1:
                line_str = lines[line-1]
                if column <= 20:
                    note.append(f"{line_str[:40]}\n{' '*(column-1)}^")
                else:
                    start = column - 20
                    note.append(f"{line_str[start:start+40]}\n{' '*(column-1-start)}^")
        self.add_note("\n".join(note))
        return self

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ParseError(expected={self.expected!r}, actual={self.actual!r}, pos={self.position})"

    def __bool__(self) -> Literal[False]:
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseError):
            return NotImplemented
        return (
            self.expected == other.expected
            and self.actual == other.actual
            and self.remainder == other.remainder
        )

    def __hash__(self) -> int:
        return hash((type(self.expected), self.position))

ParseResult = Union[Success[Any], ParseError]



class Context:
    """
    Per-invocation state passed down through the parsers.

    Carries the human friendly name for the next token to be consumed. Set by `Parser.name()`, read by the primitive matchers, and cleared whenever a sequencing combinator moves on to the next parser.

    Immutable. Combinators derive new contexts instead of modifying them.
    """
    def __init__(self, *, name: str | None = None) -> None:
        self.name: Final[str | None] = name

    def with_name(self, name: str) -> Context:
        return Context(name=name)

    def with_default_name(self, name: str) -> Context:
        """Sets the name only if there isn't one already."""
        if self.name is not None:
            return self
        return Context(name=name)

    def without_name(self) -> Context:
        if self.name is None:
            return self
        return Context()

    def labels_or(self, tokens: Iterable[object]) -> tuple[object, ...]:
        """The name as the only label if there is one, the tokens otherwise."""
        if self.name is not None:
            return (self.name,)
        return tuple(tokens)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Context(name={self.name!r})"


ParseFunction = Callable[[TokenStream[Any], Context], ParseResult]

class Parser(Generic[_TokenT, _OutputT]):
    """
    An immutable parser value: wraps a pure function from (remaining input, context) to a `Success` or a `ParseError`.

    Build parsers with the primitive matchers (`token()`, `one_of()`, `string()`...) and combine them:
    - `a | b`: ordered choice
    - `a << b`: sequence, keeps the output of `a`
    - `a >> b`: sequence, keeps the output of `b`
    - `a & b`: sequence, calls the output of `a` with the output of `b`

    Using parsers:
    ```
    result = parser.parse("input")
    if isinstance(result, ParseError):
        print(result)   # expected ..., but found ...
    else:
        ...             # `result` is the output
    ```

    Parsers carry no state, so they can be reused and shared between threads freely.
    """

    def __init__(self, parse_fn: ParseFunction, *, allow_backtrack: bool = False) -> None:
        """
        Create parsers using the combinators and primitive matchers instead.

        `allow_backtrack`: See `Parser.backtracking()`.
        """
        self._parse_fn: Final[ParseFunction] = parse_fn
        self.allow_backtrack: Final[bool] = allow_backtrack

    def run(self, stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        """Applies the parser at the start of `stream`. Doesn't require the whole input to be consumed."""
        return self._parse_fn(stream, context)

    def parse(self, tokens: Sequence[_TokenT]) -> _OutputT | ParseError:
        """
        Applies the parser to `tokens`, which must be consumed entirely.

        Returns the produced output, or a `ParseError`. (A string is parsed as a sequence of characters.)
        """
        log.debug("parsing %d tokens", len(tokens))
        result = self.run(TokenStream(tokens), Context())
        if not result:
            log.debug("failed at position %d: %s", result.position, result)
            return result
        if not result.remainder.is_eof():
            log.debug("trailing input at position %d", result.remainder.pos)
            return ParseError(END_OF_INPUT, result.remainder, result.remainder)
        return result.output

    def parse_or_raise(self, tokens: Sequence[_TokenT]) -> _OutputT:
        """Same as `Parser.parse()`, but raises the `ParseError` (with a position note) instead of returning it."""
        result = self.parse(tokens)
        if isinstance(result, ParseError):
            raise result.with_position_note()
        return result

    @classmethod
    def pure(cls, value: _T) -> Parser[Any, _T]:
        """Returns a parser that consumes nothing and produces `value`."""
        return Parser(lambda stream, context: Success(value, stream))

    @classmethod
    def fail(cls, expected: Expected = None, actual: object = FAIL) -> Parser[Any, Any]:
        """Returns a parser that fails unconditionally, at the position it was applied."""
        return Parser(lambda stream, context: ParseError(expected, actual, stream))

    # choice

    def __or__(self, other: Parser[_TokenT, _OtherT]) -> Parser[_TokenT, _OutputT | _OtherT]:
        """
        Ordered choice.

        Applies this parser. If it fails without consuming input (or it allows backtracking), applies `other` instead.

        If both fail, the expected descriptors are merged when they're of the same kind. Otherwise the failure of `other` is reported.
        """
        def choice(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if result or not _can_fall_through(self, result, stream):
                return result
            other_result = other.run(stream, context)
            if other_result or not _can_fall_through(other, other_result, stream):
                return other_result
            return _merge_failures(result, other_result)
        return Parser(choice)

    def backtracking(self) -> Parser[_TokenT, _OutputT]:
        """
        Returns a copy of this parser that lets the choice combinator try the next alternative even if it failed after consuming input.

        Only the parser that's directly an operand of `|` is checked, so call this last.
        """
        return Parser(self._parse_fn, allow_backtrack=True)

    # sequencing

    def __lshift__(self, other: Parser[_TokenT, Any]) -> Parser[_TokenT, _OutputT]:
        """Applies this parser, then `other`. Keeps the output of this parser."""
        def left_yield(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return result
            # subsequent parsers shouldn't inherit this parser's name
            other_result = other.run(result.remainder, context.without_name())
            if not other_result:
                return other_result
            return Success(result.output, other_result.remainder)
        return Parser(left_yield)

    def __rshift__(self, other: Parser[_TokenT, _OtherT]) -> Parser[_TokenT, _OtherT]:
        """Applies this parser, then `other`. Keeps the output of `other`."""
        def right_yield(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return result
            return other.run(result.remainder, context.without_name())
        return Parser(right_yield)

    def apply(self, other: Parser[_TokenT, Any]) -> Parser[_TokenT, Any]:
        """
        Applies this parser, then `other`. The output of this parser must be a function taking one argument: it's called with the output of `other`, and the return value becomes the output.

        Functions with more arguments are used by currying them:
        ```
        pair = token("a").map(curry(lambda a, b: (a, b))) & token("b")
        ```
        (`combine()` does the same thing.)

        Same as `&`.
        """
        def applied(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return result
            other_result = other.run(result.remainder, context.without_name())
            if not other_result:
                return other_result
            return Success(result.output(other_result.output), other_result.remainder)
        return Parser(applied)

    def __and__(self, other: Parser[_TokenT, Any]) -> Parser[_TokenT, Any]:
        """Same as `Parser.apply()`."""
        return self.apply(other)

    def map(self, fn: Callable[[_OutputT], _NewT]) -> Parser[_TokenT, _NewT]:
        """Applies this parser, then pipes the output through `fn`."""
        def mapped(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return result
            return Success(fn(result.output), result.remainder)
        return Parser(mapped)

    # repetition

    @overload
    def repeat(self, count: int | range) -> Parser[_TokenT, list[_OutputT]]: ...
    @overload
    def repeat(self, *, at_least: int = 0, at_most: int | None = None) -> Parser[_TokenT, list[_OutputT]]: ...

    def repeat(
        self,
        count: int | range | None = None,
        *,
        at_least: int = 0,
        at_most: int | None = None,
    ) -> Parser[_TokenT, list[_OutputT]]:
        """
        Applies this parser repeatedly, and produces the list of outputs.

        `count`: An exact number of times, or a `range` (exclusive end, like always).
        `at_least`, `at_most`: Inclusive bounds. `at_most=None` means unbounded.

        Stops when `at_most` is reached, when an iteration fails, or when an iteration succeeds without consuming anything. In the last case, since the parser would keep producing the same output, the list is padded with it up to `at_least`.

        Fails with the failure of the last iteration if there were fewer than `at_least` iterations. Otherwise, that failure is discarded. (Use `optional()` if it should show up in error messages.)
        """
        if count is not None:
            if at_least != 0 or at_most is not None:
                raise ValueError("Pass either a count or bounds, not both.")
            if isinstance(count, range):
                if count.step != 1:
                    raise ValueError("Repetition ranges must have a step of 1.")
                at_least, at_most = count.start, count.stop - 1
            else:
                at_least = at_most = count
        if at_least < 0:
            raise ValueError("The lower bound of a repetition can't be negative.")
        if at_most is not None and at_most < at_least:
            raise ValueError(f"Empty repetition bounds: at least {at_least}, at most {at_most}.")

        def repeated(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            outputs: list[_OutputT] = []
            remainder = stream
            while at_most is None or len(outputs) < at_most:
                result = self.run(remainder, context)
                if not result:
                    if len(outputs) < at_least:
                        return result
                    break
                outputs.append(result.output)
                if result.remainder.pos == remainder.pos:
                    log.debug("repetition made no progress at position %d", remainder.pos)
                    outputs.extend(result.output for _ in range(at_least - len(outputs)))
                    break
                remainder = result.remainder
            return Success(outputs, remainder)
        return Parser(repeated)

    def optional(self) -> Parser[_TokenT, list[_OutputT]]:
        """
        Applies this parser, and succeeds regardless.

        Produces `[output]` if it matched, `[]` otherwise.
        """
        # not `repeat(at_most=1)`: that would discard the failure of a partial match
        # instead of letting it surface through the choice combinator
        nothing: Parser[_TokenT, list[_OutputT]] = Parser(lambda stream, context: Success([], stream))
        return self.map(lambda output: [output]) | nothing

    # lookahead

    def ahead(self) -> Parser[_TokenT, _OutputT]:
        """Applies this parser without consuming any input."""
        def lookahead(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return result
            return Success(result.output, stream)
        return Parser(lookahead)

    def not_ahead(self) -> Parser[_TokenT, None]:
        """
        Applies this parser without consuming any input. Succeeds (producing `None`) if it fails, and vice versa.

        The failure reports the output of this parser as unexpected.
        """
        def negative_lookahead(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
            result = self.run(stream, context)
            if not result:
                return Success(None, stream)
            return ParseError(None, result.output, stream)
        return Parser(negative_lookahead)

    # naming

    def name(self, name: str) -> Parser[_TokenT, _OutputT]:
        """
        Gives the next token to be consumed a human friendly name, shown in error messages instead of the token.

        If a name is already set, it is replaced.
        """
        return Parser(lambda stream, context: self.run(stream, context.with_name(name)))

    def name_if_absent(self, name: str) -> Parser[_TokenT, _OutputT]:
        """
        Gives the next token to be consumed a human friendly name, shown in error messages instead of the token.

        If a name is already set, it is left alone.
        """
        return Parser(lambda stream, context: self.run(stream, context.with_default_name(name)))

    # output helpers

    def join(self, separator: str = "") -> Parser[_TokenT, str]:
        """Joins a list of outputs into a string."""
        return self.map(lambda output: separator.join(str(item) for item in output))

    def flatten(self) -> Parser[_TokenT, list[Any]]:
        """Flattens a list of lists by one level."""
        return self.map(lambda output: [item for inner in output for item in inner])

    def extend(self) -> Parser[_TokenT, Callable[[Any], list[Any]]]:
        """
        Turns a list output into a function that appends its argument to the list. For use with `&`.

        ```
        items = (item << token(",")).repeat(at_least=0).extend() & item
        ```
        """
        return self.map(lambda output: lambda item: [*output, item])

    def concat(self) -> Parser[_TokenT, Callable[[Any], list[Any]]]:
        """Turns a list output into a function that concatenates it with its argument. For use with `&`."""
        return self.map(lambda output: lambda other: [*output, *other])

def _can_fall_through(parser: Parser[Any, Any], error: ParseError, stream: TokenStream[Any]) -> bool:
    return parser.allow_backtrack or error.position == stream.pos

def _merge_failures(left: ParseError, right: ParseError) -> ParseError:
    left_expected = left.expected
    right_expected = right.expected
    if isinstance(left_expected, OneOf) and isinstance(right_expected, OneOf):
        return ParseError(left_expected.merge(right_expected), right.actual, right.remainder)
    elif isinstance(left_expected, NoneOf) and isinstance(right_expected, NoneOf):
        return ParseError(left_expected.merge(right_expected), right.actual, right.remainder)
    else:
        return right



def token(expected: _TokenT) -> Parser[_TokenT, _TokenT]:
    """Matches one token equal to `expected`."""
    def match(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        found = stream.peek()
        if not stream.is_eof() and found == expected:
            return Success(found, stream.advance())
        return ParseError(OneOf(context.labels_or([expected])), found, stream)
    return Parser(match)

def not_token(unexpected: _TokenT) -> Parser[_TokenT, _TokenT]:
    """
    Matches one token not equal to `unexpected`.

    The failure reports the token actually found (`unexpected` itself, or `END_OF_INPUT`) as the actual descriptor.
    """
    def match(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        found = stream.peek()
        if not stream.is_eof() and found != unexpected:
            return Success(found, stream.advance())
        return ParseError(NoneOf(context.labels_or([unexpected])), found, stream)
    return Parser(match)

def one_of(tokens: Iterable[_TokenT]) -> Parser[_TokenT, _TokenT]:
    """Matches one token that's in `tokens`."""
    choices = tuple(tokens)
    def match(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        found = stream.peek()
        if stream.is_eof() or found not in choices:
            return ParseError(OneOf(context.labels_or(choices)), found, stream)
        return Success(found, stream.advance())
    return Parser(match)

def none_of(tokens: Iterable[_TokenT]) -> Parser[_TokenT, _TokenT]:
    """Matches one token that's not in `tokens`."""
    excluded = tuple(tokens)
    def match(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        found = stream.peek()
        if stream.is_eof() or found in excluded:
            return ParseError(NoneOf(context.labels_or(excluded)), found, stream)
        return Success(found, stream.advance())
    return Parser(match)

def string(literal: str) -> Parser[str, str]:
    """
    Matches the characters of `literal` in order.

    A mismatch anywhere reports the whole literal as expected (or the name, if one is set), not just the mismatching character.
    """
    def match(stream: TokenStream[str], context: Context) -> ParseResult:
        for i, char in enumerate(literal):
            found = stream.advance(i).peek()
            if found != char:
                return ParseError(OneOf(context.labels_or([literal])), found, stream.advance(i))
        return Success(literal, stream.advance(len(literal)))
    return Parser(match)

def alternatives(parsers: Iterable[Parser[_TokenT, _OutputT]]) -> Parser[_TokenT, _OutputT]:
    """
    Ordered choice between all of `parsers`. Same as `p1 | p2 | ...`, without nesting a parser per alternative.

    Fails unconditionally if there are none.
    """
    choices = tuple(parsers)
    def choose(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        failure = ParseError(None, FAIL, stream)
        for parser in choices:
            # a merged failure past the start can't be recovered from
            if failure.position != stream.pos:
                break
            result = parser.run(stream, context)
            if result or not _can_fall_through(parser, result, stream):
                return result
            failure = _merge_failures(failure, result)
        return failure
    return Parser(choose)

def lazy(thunk: Callable[[], Parser[_TokenT, _OutputT]]) -> Parser[_TokenT, _OutputT]:
    """
    Defers getting the parser until it's used, so that parsers can refer to each other (or themselves) before they're defined.

    ```
    group = token("(") >> lazy(lambda: expression) << token(")")
    expression = group | integer
    ```

    `thunk` is called on every use.
    """
    def deferred(stream: TokenStream[_TokenT], context: Context) -> ParseResult:
        parser = thunk()
        if not isinstance(parser, Parser):
            raise TypeError(f"The function given to lazy() returned {type(parser).__name__}, not a Parser.")
        log.debug("resolved lazy parser at position %d: %r", stream.pos, parser)
        return parser.run(stream, context)
    return Parser(deferred)



def curry(fn: Callable[..., _T], arity: int | None = None) -> Callable[[Any], Any]:
    """
    Converts a function taking `arity` arguments into a chain of functions taking one argument each.

    `curry(f)(a)(b)(c) == f(a, b, c)`

    If `arity` isn't given, it's the number of required positional parameters of `fn`.
    """
    if arity is None:
        try:
            parameters = inspect.signature(fn).parameters.values()
        except (TypeError, ValueError) as e:
            raise TypeError(f"Can't determine the number of arguments of {fn!r}, pass `arity` explicitly.") from e
        arity = 0
        for parameter in parameters:
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise TypeError(f"Can't curry {fn!r} which takes variable arguments, pass `arity` explicitly.")
            if parameter.default is not inspect.Parameter.empty:
                continue
            if parameter.kind == inspect.Parameter.KEYWORD_ONLY:
                raise TypeError(f"Can't curry {fn!r} which has required keyword-only parameters.")
            arity += 1
    if arity < 1:
        raise ValueError("Only functions taking at least one argument can be curried.")
    total = arity

    def collect(args: tuple[Any, ...]) -> Callable[[Any], Any]:
        def take(arg: Any) -> Any:
            if len(args) + 1 == total:
                return fn(*args, arg)
            return collect((*args, arg))
        return take
    return collect(())

def combine(fn: Callable[..., _T], *parsers: Parser[_TokenT, Any]) -> Parser[_TokenT, _T]:
    """
    Applies `parsers` in sequence, and calls `fn` with all of their outputs.

    ```
    pair = combine(lambda key, value: (key, value), key << token(":"), value)
    ```
    """
    if len(parsers) <= 0:
        raise ValueError("At least one parser required.")
    first, *rest = parsers
    parser: Parser[_TokenT, Any] = first.map(curry(fn, len(parsers)))
    for other in rest:
        parser = parser & other
    return parser
